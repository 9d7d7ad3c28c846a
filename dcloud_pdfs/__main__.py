from .downloader import main

main()

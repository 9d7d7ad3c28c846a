#!/usr/bin/env python3
import sys
import logging
import argparse
from dataclasses import dataclass

from .fetcher import (
    REQUEST_TIMEOUT,
    already_downloaded,
    fetch,
    make_session,
    output_path_for,
)
from .resolvers import RESOLVERS

# --- CONFIG ---
INPUT_FILE    = "extracted_urls.txt"
OUTPUT_DIR    = "NYPD_PDF"
MAX_DOWNLOADS = 1000    # new files per run
STRATEGY      = "pattern"
# ----------------


@dataclass
class BatchConfig:
    input_file: str = INPUT_FILE
    output_dir: str = OUTPUT_DIR
    max_downloads: int = MAX_DOWNLOADS
    strategy: str = STRATEGY
    timeout: float = REQUEST_TIMEOUT


@dataclass
class BatchStats:
    downloaded: int = 0
    existing: int = 0
    unresolved: int = 0
    failed: int = 0
    cap_reached: bool = False


def read_candidates(path):
    """
    One candidate URL per non-blank line. OSError is left to the caller.

    Undecodable bytes become U+FFFD, so such a line only fails resolution.
    """
    with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
        return [line.strip() for line in f if line.strip()]


def run_batch(candidates, config, session=None):
    """
    Resolve and download ``candidates`` in order.

    Only confirmed new files count against ``config.max_downloads``; files
    already on disk and failed fetches do not.
    """
    resolve = RESOLVERS[config.strategy]
    own_session = session is None
    if own_session:
        session = make_session()

    stats = BatchStats()
    try:
        for candidate in candidates:
            if stats.downloaded >= config.max_downloads:
                logging.info(
                    f"Reached maximum download limit of {config.max_downloads}. Stopping."
                )
                stats.cap_reached = True
                break

            resolution = resolve(candidate, session, config.timeout)
            if resolution is None:
                stats.unresolved += 1
                continue

            out_path = output_path_for(resolution.url, config.output_dir)
            if out_path is None:
                logging.error(f"Skipping invalid final URL: {resolution.url}")
                if resolution.response is not None:
                    resolution.response.close()
                stats.failed += 1
                continue

            if already_downloaded(out_path):
                logging.info(f"File already exists, not counting as a download: {out_path}")
                if resolution.response is not None:
                    resolution.response.close()
                stats.existing += 1
                continue

            ok = fetch(
                resolution.url,
                config.output_dir,
                session,
                response=resolution.response,
                timeout=config.timeout,
            )
            if ok:
                stats.downloaded += 1
            else:
                stats.failed += 1
    finally:
        if own_session:
            session.close()

    logging.info(
        f"Done: {stats.downloaded} downloaded, {stats.existing} already present, "
        f"{stats.unresolved} unresolved, {stats.failed} failed"
    )
    return stats


def non_negative_int(value):
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Download DocumentCloud PDFs listed one URL per line."
    )
    parser.add_argument(
        "input_file",
        nargs="?",
        default=INPUT_FILE,
        help=f"Text file of DocumentCloud URLs (default: {INPUT_FILE})"
    )
    parser.add_argument(
        "-o", "--output-dir",
        default=OUTPUT_DIR,
        help=f"Directory the PDFs are written to (default: {OUTPUT_DIR})"
    )
    parser.add_argument(
        "-n", "--max-downloads",
        type=non_negative_int,
        default=MAX_DOWNLOADS,
        help=f"Stop after this many new files (default: {MAX_DOWNLOADS})"
    )
    parser.add_argument(
        "-s", "--strategy",
        choices=sorted(RESOLVERS),
        default=STRATEGY,
        help="Rewrite the URL text (pattern) or follow HTTP redirects (redirect)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=REQUEST_TIMEOUT,
        help=f"Per-request timeout in seconds (default: {REQUEST_TIMEOUT})"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    config = BatchConfig(
        input_file=args.input_file,
        output_dir=args.output_dir,
        max_downloads=args.max_downloads,
        strategy=args.strategy,
        timeout=args.timeout,
    )

    try:
        candidates = read_candidates(config.input_file)
    except OSError as e:
        logging.error(f"Cannot read input file {config.input_file}: {e}")
        sys.exit(1)

    run_batch(candidates, config)


if __name__ == "__main__":
    main()

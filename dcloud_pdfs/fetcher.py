import os
import logging
import posixpath
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# --- CONFIG ---
REQUEST_TIMEOUT = 30    # seconds, per request
MAX_REDIRECTS   = 30    # redirect hops before giving up
CHUNK_SIZE      = 64 * 1024
# ----------------


def make_session():
    session = requests.Session()
    # one attempt per request; a failed item is skipped for this run
    retries = Retry(total=0, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.max_redirects = MAX_REDIRECTS
    session.headers.update({
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/115.0.0.0 Safari/537.36"
        )
    })
    return session


def output_path_for(url, output_dir):
    """
    Where the PDF behind ``url`` is stored: the last segment of the URL
    path inside ``output_dir``, always ending in ".pdf".

    Returns None when the URL does not parse or has no usable last segment.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    file_name = posixpath.basename(parsed.path.rstrip("/"))
    if file_name in ("", "."):
        return None

    if not file_name.lower().endswith(".pdf"):
        file_name += ".pdf"
    return os.path.join(output_dir, file_name)


def already_downloaded(path):
    return os.path.isfile(path)


def fetch(url, output_dir, session, response=None, timeout=REQUEST_TIMEOUT):
    """
    Download ``url`` into ``output_dir``.

    ``response`` is an already opened streaming response for ``url``
    (redirect strategy); without it a GET is issued here. Failures are
    logged, never raised. Returns True only if a new file was written.
    """
    try:
        out_path = output_path_for(url, output_dir)
        if out_path is None:
            logging.error(f"Could not determine file name from {url!r}")
            return False

        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as e:
            logging.error(f"Failed to create directory {output_dir}: {e}")
            return False

        if already_downloaded(out_path):
            logging.info(f"File already exists, skipping: {out_path}")
            return False

        if response is None:
            try:
                response = session.get(url, stream=True, timeout=timeout)
            except requests.RequestException as e:
                logging.error(f"Failed to download {url}: {e}")
                return False

        if not 200 <= response.status_code < 300:
            logging.error(f"Download failed for {url}: HTTP {response.status_code}")
            return False

        return _save(response, out_path)
    finally:
        if response is not None:
            response.close()


def _save(response, out_path):
    # stream into a sibling .part file, rename only once the body is complete
    tmp_path = out_path + ".part"
    written = 0
    try:
        with open(tmp_path, "wb") as out:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    out.write(chunk)
                    written += len(chunk)

        expected = response.headers.get("Content-Length")
        encoded = response.headers.get("Content-Encoding")
        if expected and not encoded and int(expected) != written:
            raise OSError(f"incomplete body: got {written} of {expected} bytes")

        os.replace(tmp_path, out_path)
    except (requests.RequestException, OSError, ValueError) as e:
        logging.error(f"Failed to save PDF to {out_path}: {e}")
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        return False

    logging.info(f"Downloaded to {out_path} ({written} bytes)")
    return True

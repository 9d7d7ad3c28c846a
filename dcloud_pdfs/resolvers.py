"""
Turn DocumentCloud document URLs into the URL of the stored PDF.

Two strategies share one signature, ``resolver(candidate, session, timeout)``:

- ``resolve_by_pattern`` rewrites the URL text, no network access.
- ``resolve_by_redirect`` GETs the URL and keeps the final URL of the
  redirect chain; the open response travels with the result so the body
  is not fetched twice.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests

from .fetcher import REQUEST_TIMEOUT

STORAGE_HOST = "s3.documentcloud.org"
DOCUMENT_RE = re.compile(r"documentcloud\.org/documents/(\d+)-([a-zA-Z0-9_\-]+)")


@dataclass
class Resolution:
    url: str
    # set when the resolver already issued the GET
    response: Optional[requests.Response] = None


def extract_final_url(candidate):
    """Return the storage URL for ``candidate``, or "" if it is not a document URL."""
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return ""

    if STORAGE_HOST in parsed.netloc:
        return candidate

    m = DOCUMENT_RE.search(candidate)
    if not m:
        return ""

    doc_id, slug = m.groups()
    return f"https://{STORAGE_HOST}/documents/{doc_id}/{slug}.pdf"


def resolve_by_pattern(candidate, session=None, timeout=None):
    final_url = extract_final_url(candidate)
    if not final_url:
        logging.warning(f"Invalid or unrecognized DocumentCloud URL: {candidate}")
        return None
    return Resolution(final_url)


def resolve_by_redirect(candidate, session, timeout=REQUEST_TIMEOUT):
    try:
        parsed = urlparse(candidate)
    except ValueError:
        parsed = None
    if not parsed or not parsed.scheme or not parsed.netloc:
        logging.warning(f"Not a URL, cannot follow redirects: {candidate!r}")
        return None

    try:
        resp = session.get(candidate, allow_redirects=True, stream=True, timeout=timeout)
    except requests.RequestException as e:
        logging.error(f"Network error resolving {candidate}: {e}")
        return None

    if not 200 <= resp.status_code < 300:
        logging.error(f"Resolving {candidate} failed: HTTP {resp.status_code}")
        resp.close()
        return None

    final_url = resp.request.url
    if STORAGE_HOST not in urlparse(final_url).netloc:
        # no redirect to storage, the body is a page not a PDF
        logging.warning(f"{candidate} did not redirect to {STORAGE_HOST} (ended at {final_url})")
        resp.close()
        return None
    if final_url != candidate:
        logging.debug(f"{candidate} redirected to {final_url}")
    return Resolution(final_url, resp)


RESOLVERS = {
    "pattern": resolve_by_pattern,
    "redirect": resolve_by_redirect,
}

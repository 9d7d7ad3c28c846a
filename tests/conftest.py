import pytest
import requests


class DummyRequest:
    def __init__(self, url):
        self.url = url


class DummyResponse:
    def __init__(self, url, status_code=200, chunks=(b"%PDF-1.4 test",), headers=None, fail_after=None):
        self.request = DummyRequest(url)
        self.url = url
        self.status_code = status_code
        self.headers = headers or {}
        self._chunks = list(chunks)
        self._fail_after = fail_after
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i, chunk in enumerate(self._chunks):
            if self._fail_after is not None and i >= self._fail_after:
                raise requests.ConnectionError("connection reset")
            yield chunk

    def close(self):
        self.closed = True


class DummySession:
    """
    Stands in for requests.Session. ``routes`` maps a requested URL to a
    DummyResponse, an exception instance to raise, or a callable building
    either from the URL.
    """

    def __init__(self, routes=None, default=None):
        self.routes = routes or {}
        self.default = default
        self.calls = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        result = self.routes.get(url, self.default)
        if callable(result) and not isinstance(result, DummyResponse):
            result = result(url)
        if result is None:
            result = DummyResponse(url)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


@pytest.fixture
def session():
    return DummySession()

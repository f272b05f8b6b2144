"""In-memory stand-ins for the HTTP session used by FetchClient."""

import threading
import time


class FakeResponse:
    def __init__(self, status=200, body='', headers=None, url='', chunk_delay=0.0):
        self.status_code = status
        self.content = body.encode('utf-8') if isinstance(body, str) else body
        self.headers = headers or {}
        self.url = url
        self.chunk_delay = chunk_delay
        self.closed = False

    def iter_content(self, chunk_size=1):
        # with chunk_delay, the body trickles out one byte at a time
        step = 1 if self.chunk_delay else max(1, chunk_size)
        for i in range(0, len(self.content), step):
            if self.chunk_delay:
                time.sleep(self.chunk_delay)
            yield self.content[i:i + step]

    def close(self):
        self.closed = True


class FakeSession:
    """Maps URLs to canned responses; everything else is a 404.

    A route value may be ``(status, body)``, ``(status, body, headers)``,
    a prepared :class:`FakeResponse`, an exception instance to raise, or a
    list consumed one item per call.
    Keys are either a URL or a ``(METHOD, URL)`` pair.
    """

    def __init__(self, routes=None, delay=0.0):
        self.routes = dict(routes or {})
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()
        self._active = 0
        self.max_active = 0

    def request(self, method, url, headers=None, data=None, timeout=None, allow_redirects=True, stream=False):
        with self._lock:
            self.calls.append({'method': method, 'url': url, 'headers': headers, 'data': data,
                               'timeout': timeout, 'allow_redirects': allow_redirects, 'stream': stream})
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            route = self.routes.get((method, url), self.routes.get(url))
            if isinstance(route, list):
                route = route.pop(0) if route else None
        try:
            if self.delay:
                time.sleep(self.delay)
            if isinstance(route, Exception):
                raise route
            if isinstance(route, FakeResponse):
                return route
            if route is None:
                return FakeResponse(404, 'Not Found', url=url)
            status, body = route[0], route[1]
            headers_out = route[2] if len(route) > 2 else {}
            return FakeResponse(status, body, headers_out, url)
        finally:
            with self._lock:
                self._active -= 1

    def urls(self, method=None):
        return [c['url'] for c in self.calls if method is None or c['method'] == method]

    def close(self):
        pass


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)

# This file is part of the TileArchive project.
# Copyright (C) 2026 TileArchive contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Mock tile server and HTTP client doubles for tests.
"""

import base64
import sys
import threading
import time
from contextlib import contextmanager
from http.server import HTTPServer, BaseHTTPRequestHandler

from tilearchive.client.http import HTTPClientError


class RequestsMismatchError(AssertionError):
    def __init__(self, errors):
        AssertionError.__init__(self, errors)
        self.errors = errors

    def __str__(self):
        return 'requests mismatch:\n' + '\n'.join(' -  %s' % e for e in self.errors)


class _HTTPServer(HTTPServer):
    allow_reuse_address = True

    def handle_error(self, request, client_address):
        if isinstance(sys.exc_info()[1], ConnectionError):
            # client went away, e.g. in timeout tests
            return
        HTTPServer.handle_error(self, request, client_address)


class MockTileServer(threading.Thread):
    """
    Serve the expected ``(request, response)`` pairs, one request each.

    A request is a dict with the `path` and optional `headers` that must
    be sent and `require_basic_auth`. A response is a dict with optional
    `status`, `body`, `headers` and `duration` (delay in seconds).
    Differences to the expected requests are collected in `errors`.
    """
    def __init__(self, address, requests_responses, unordered=False):
        threading.Thread.__init__(self)
        self.daemon = True
        self.expected = requests_responses
        self.unordered = unordered
        self.errors = []
        self.stopped = False
        self.httpd = _HTTPServer(address, _handler_class(self))
        self.httpd.timeout = 0.5

    @property
    def http_port(self):
        return self.httpd.server_address[1]

    @property
    def base_url(self):
        return 'http://localhost:%d' % (self.http_port, )

    def run(self):
        try:
            while self.expected and not self.stopped:
                self.httpd.handle_request()
        finally:
            self.httpd.server_close()
        if self.expected:
            self.errors.append('missing requests: ' +
                               ', '.join(req['path'] for req, _ in self.expected))

    def next_request(self, path):
        if not self.expected:
            return None, None
        if not self.unordered:
            return self.expected.pop(0)
        for req_resp in self.expected:
            if req_resp[0]['path'] == path:
                self.expected.remove(req_resp)
                return req_resp
        return None, None


def _handler_class(server):
    class MockTileHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            req, resp = server.next_request(self.path)
            if req is None:
                server.errors.append('unexpected request: %s' % self.path)
                return self.respond(500)
            if req.get('require_basic_auth') and 'Authorization' not in self.headers:
                server.expected.insert(0, (req, resp))
                return self.respond(401, b'no access',
                                    {'WWW-Authenticate': 'Basic realm="tiles"'})
            if req['path'] != self.path:
                server.errors.append('expected request %s, got %s' % (req['path'], self.path))
            for key, value in req.get('headers', {}).items():
                if self.headers.get(key) != value:
                    server.errors.append('header %s: expected %r, got %r'
                                         % (key, value, self.headers.get(key)))
            if 'duration' in resp:
                time.sleep(float(resp['duration']))
            self.respond(int(resp.get('status', 200)), resp.get('body', b''),
                         resp.get('headers'))

        def respond(self, status, body=b'', headers=None):
            self.send_response(status)
            for key, value in (headers or {}).items():
                self.send_header(key, value)
            self.send_header('Content-Length', str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            pass

    return MockTileHandler


@contextmanager
def mock_httpd(address, requests_responses, unordered=False):
    """
    Serve `requests_responses` on `address` and check that all were
    requested. Use port 0 for a free port, the yielded server has
    a `base_url`.
    """
    server = MockTileServer(address, requests_responses, unordered=unordered)
    server.start()
    try:
        yield server
    finally:
        server.stopped = True
        server.join(30)
    if server.errors:
        raise RequestsMismatchError(server.errors)


def basic_auth_value(username, password):
    return base64.b64encode(('%s:%s' % (username, password)).encode('utf-8'))


class MockHTTPClient(object):
    """
    HTTP client double for the archive writer. Returns the tile URL as
    body unless the URL is in `failures`, which maps URLs to the number
    of failing requests before a success (``-1`` fails forever).
    """
    def __init__(self, failures=None):
        self.failures = dict(failures or {})
        self.requested = []
        self.timeouts = []
        self._lock = threading.Lock()

    @property
    def requests(self):
        return len(self.requested)

    def fetch_bytes(self, url, timeout=None):
        with self._lock:
            self.requested.append(url)
            self.timeouts.append(timeout)
            remaining = self.failures.get(url, 0)
            if remaining:
                if remaining > 0:
                    self.failures[url] = remaining - 1
                raise HTTPClientError('HTTP Error "%s": 500' % (url, ), response_code=500)
        return url.encode('utf-8')

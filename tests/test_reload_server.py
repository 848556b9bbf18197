"""Tests for reload_server module."""
import http.client
import os
import sys
import time

import pytest

try:
    from tex2html_notes import reload_server
except ImportError:
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
    from tex2html_notes import reload_server


@pytest.fixture
def server():
    srv = reload_server.ReloadServer(port=0)
    srv.start()
    yield srv
    srv.stop()


def _wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


class TestReloadServer:
    def test_port_assigned(self, server):
        assert server.port != 0

    def test_notify_without_clients(self, server):
        assert server.notify_reload() == 0

    def test_event_stream(self, server):
        conn = http.client.HTTPConnection('localhost', server.port, timeout=5)
        try:
            conn.request('GET', '/reload-stream')
            resp = conn.getresponse()
            assert resp.status == 200
            assert resp.getheader('Content-Type') == 'text/event-stream'
            assert resp.getheader('Access-Control-Allow-Origin') == '*'
            assert resp.readline() == b': connected\n'
            assert resp.readline() == b'\n'

            assert _wait_for(lambda: server.client_count == 1)
            assert server.notify_reload() == 1
            assert resp.readline() == b'data: reload\n'
        finally:
            conn.close()

    def test_other_paths_not_found(self, server):
        conn = http.client.HTTPConnection('localhost', server.port, timeout=5)
        try:
            conn.request('GET', '/index.html')
            assert conn.getresponse().status == 404
        finally:
            conn.close()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

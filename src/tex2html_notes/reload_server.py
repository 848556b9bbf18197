#!/usr/bin/env python3
"""
reload_server.py - Live-reload event stream

Pages generated in watch mode open an EventSource on
http://localhost:<port>/reload-stream and reload themselves when a
"reload" message arrives after a build.
"""

import queue
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer


KEEPALIVE_INTERVAL = 15  # seconds


class ReloadHandler(BaseHTTPRequestHandler):
    """Serves the event stream; every other path is a 404."""

    def do_GET(self):
        if self.path.split('?', 1)[0] != '/reload-stream':
            self.send_error(404)
            return

        self.send_response(200)
        self.send_header('Content-Type', 'text/event-stream')
        self.send_header('Cache-Control', 'no-cache')
        self.send_header('Connection', 'keep-alive')
        self.send_header('Access-Control-Allow-Origin', '*')
        self.end_headers()

        client = self.server.reload.connect()
        try:
            self.wfile.write(b': connected\n\n')
            self.wfile.flush()
            while not self.server.reload.stopping.is_set():
                try:
                    message = client.get(timeout=KEEPALIVE_INTERVAL)
                except queue.Empty:
                    message = None
                if message is None:
                    self.wfile.write(b': keepalive\n\n')
                else:
                    self.wfile.write(f'data: {message}\n\n'.encode('utf-8'))
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            pass  # browser went away
        finally:
            self.server.reload.disconnect(client)

    def log_message(self, format, *args):
        pass  # one line per request is too noisy in watch mode


class ReloadServer:
    """Background HTTP server broadcasting reload events to browsers."""

    def __init__(self, port=35729, host='localhost'):
        self.port = port
        self.host = host
        self.stopping = threading.Event()
        self._clients = []
        self._clients_lock = threading.Lock()
        self._httpd = None
        self._thread = None

    def connect(self):
        client = queue.Queue()
        with self._clients_lock:
            self._clients.append(client)
            count = len(self._clients)
        print(f"Browser connected ({count} client(s))", file=sys.stderr)
        return client

    def disconnect(self, client):
        with self._clients_lock:
            if client in self._clients:
                self._clients.remove(client)
            count = len(self._clients)
        print(f"Browser disconnected ({count} client(s))", file=sys.stderr)

    @property
    def client_count(self):
        with self._clients_lock:
            return len(self._clients)

    def start(self):
        """Bind the port and serve on a daemon thread."""
        self._httpd = ThreadingHTTPServer((self.host, self.port), ReloadHandler)
        self._httpd.daemon_threads = True
        self._httpd.reload = self
        self.port = self._httpd.server_address[1]
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()
        print(f"Auto-reload server listening on port {self.port}", file=sys.stderr)

    def notify_reload(self):
        """Send a reload message to every connected browser."""
        with self._clients_lock:
            clients = list(self._clients)
        for client in clients:
            client.put('reload')
        if clients:
            print(f"Sent reload signal to {len(clients)} client(s)", file=sys.stderr)
        return len(clients)

    def stop(self):
        self.stopping.set()
        with self._clients_lock:
            for client in self._clients:
                client.put(None)
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None

#!/usr/bin/env python3
"""
watch.py - Rebuild on change with live reload

Watches the content files under src/ and the main/preamble files. A changed
content file is rebuilt on its own without recompiling LaTeX; a change to
main.tex or the preamble triggers a full build with compilation. Bursts of
events are merged by a debounce timer, and browsers showing the pages are
told to reload after each build.

Usage:
  notes2html watch                      # watch everything
  notes2html watch src/05-bv/BV_on_R.tex  # watch specific files only
"""

import os
import sys
import threading
import time
import webbrowser
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import Builder
from .reload_server import ReloadServer


class TexChangeHandler(FileSystemEventHandler):
    """Forwards .tex file events to the watcher."""

    def __init__(self, watcher):
        self.watcher = watcher

    def handle(self, path, is_directory):
        if not is_directory and path.endswith('.tex'):
            self.watcher.file_changed(path)

    def on_modified(self, event):
        self.handle(event.src_path, event.is_directory)

    def on_created(self, event):
        self.handle(event.src_path, event.is_directory)

    def on_moved(self, event):
        self.handle(event.dest_path, event.is_directory)


class Watcher:
    """Maps file changes to debounced builds.

    Args:
        config: Project Config.
        builder: Builder running the builds.
        targets: Optional list of content files; when given only these are
            watched (main and preamble are always watched).
        no_compile: Never run LaTeX, even for main/preamble changes.
    """

    def __init__(self, config, builder, targets=None, no_compile=False):
        self.config = config
        self.builder = builder
        self.targets = {os.path.abspath(t) for t in targets} if targets else None
        self.no_compile = no_compile
        self.main_files = {config.path('main_file'), config.path('preamble_file')}
        self._lock = threading.Lock()
        self._timer = None
        self._pending_full = False
        self._pending_files = []
        self._observer = None

    # ---- event routing ----

    def file_changed(self, path):
        path = os.path.abspath(path)
        if path in self.main_files:
            print(f"{os.path.basename(path)} changed, triggering full rebuild",
                  file=sys.stderr)
            self.schedule(full=True)
            return
        src_dir = self.config.path('src_dir')
        if os.path.commonpath([path, src_dir]) != src_dir:
            return
        if self.targets is not None and path not in self.targets:
            return
        print(f"{os.path.relpath(path, src_dir)} changed", file=sys.stderr)
        self.schedule(target_file=path)

    def schedule(self, target_file=None, full=False):
        """Queue a build and restart the debounce timer.

        A full build request replaces any queued single-file builds.
        """
        with self._lock:
            if full:
                self._pending_full = True
                self._pending_files = []
            elif not self._pending_full and target_file not in self._pending_files:
                self._pending_files.append(target_file)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.config.debounce_delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self):
        """Run the queued builds now."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            full, files = self._pending_full, self._pending_files
            self._pending_full, self._pending_files = False, []

        if full:
            self.builder.build(skip_compile=self.no_compile)
        for path in files:
            self.builder.build(target_file=path, skip_compile=True)

    # ---- observer ----

    def start(self):
        handler = TexChangeHandler(self)
        self._observer = Observer()
        src_dir = self.config.path('src_dir')
        if os.path.isdir(src_dir):
            self._observer.schedule(handler, src_dir, recursive=True)
            print(f"Watching {src_dir}/ recursively", file=sys.stderr)
        for folder in sorted({os.path.dirname(p) for p in self.main_files}):
            if os.path.isdir(folder):
                self._observer.schedule(handler, folder, recursive=False)
        for path in sorted(self.main_files):
            if os.path.isfile(path):
                print(f"Watching {path}", file=sys.stderr)
        self._observer.start()

    def stop(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None


def open_in_browser(html_path):
    url = Path(html_path).resolve().as_uri()
    if webbrowser.open(url):
        print(f"\nOpened in browser: {url}\n", file=sys.stderr)
    else:
        print(f"\nOpen this file in your browser:\n   {url}\n", file=sys.stderr)


def run_watch(config, files=None, no_compile=False, open_browser=True):
    """Initial build, then rebuild on every change until Ctrl+C."""
    server = ReloadServer(config.reload_port)
    try:
        server.start()
        on_complete = server.notify_reload
    except OSError as e:
        print(f"WARNING: Auto-reload server not started on port "
              f"{config.reload_port}: {e}", file=sys.stderr)
        server = None
        on_complete = None

    builder = Builder(config, on_complete=on_complete)

    files = [os.path.abspath(f) for f in files or []]
    if files:
        print(f"Building {len(files)} specified file(s)...", file=sys.stderr)
        if not os.path.isfile(config.aux_path()):
            print("WARNING: No aux file found. Running full build first...",
                  file=sys.stderr)
            builder.build(skip_compile=no_compile)
        else:
            for path in files:
                builder.build(target_file=path, skip_compile=True)
    else:
        builder.build(skip_compile=no_compile)

    watcher = Watcher(config, builder, targets=files or None, no_compile=no_compile)
    watcher.start()

    if open_browser:
        if files:
            first = config.output_path_for(files[0])
        else:
            first = os.path.join(config.path('output_dir'), 'index.html')
        if os.path.isfile(first):
            open_in_browser(first)

    print("\nWatching for changes... (Press Ctrl+C to stop)\n", file=sys.stderr)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping watchers...", file=sys.stderr)
    finally:
        watcher.stop()
        if server is not None:
            server.stop()
    print("Done!", file=sys.stderr)

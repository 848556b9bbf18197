"""Tests for watch module (event routing and debouncing, no observer)."""
import os
import sys
import tempfile

import pytest
from watchdog.events import DirModifiedEvent, FileModifiedEvent, FileMovedEvent

try:
    from tex2html_notes import watch
except ImportError:
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
    from tex2html_notes import watch

from tex2html_notes.config import Config


class FakeBuilder:
    def __init__(self):
        self.calls = []

    def build(self, target_file=None, chapter=None, skip_compile=False):
        self.calls.append((target_file, skip_compile))
        return True


@pytest.fixture
def config():
    with tempfile.TemporaryDirectory() as tmpdir:
        cfg = Config()
        cfg.root_dir = tmpdir
        cfg.debounce_delay = 60  # flushed by hand in the tests
        yield cfg


def _src(config, *parts):
    return os.path.join(config.path('src_dir'), *parts)


class TestRouting:
    def test_content_file_builds_alone(self, config):
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder)
        path = _src(config, '01-measure', 'a.tex')
        watcher.file_changed(path)
        watcher.flush()
        assert builder.calls == [(path, True)]

    def test_main_file_builds_everything(self, config):
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder)
        watcher.file_changed(config.path('main_file'))
        watcher.flush()
        assert builder.calls == [(None, False)]

    def test_preamble_with_no_compile(self, config):
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder, no_compile=True)
        watcher.file_changed(config.path('preamble_file'))
        watcher.flush()
        assert builder.calls == [(None, True)]

    def test_outside_src_ignored(self, config):
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder)
        watcher.file_changed(os.path.join(config.root_dir, 'other.tex'))
        watcher.flush()
        assert builder.calls == []

    def test_targets_filter(self, config):
        builder = FakeBuilder()
        wanted = _src(config, '01-measure', 'a.tex')
        watcher = watch.Watcher(config, builder, targets=[wanted])
        watcher.file_changed(_src(config, '01-measure', 'b.tex'))
        watcher.file_changed(wanted)
        watcher.flush()
        assert builder.calls == [(wanted, True)]


class TestDebounce:
    def test_burst_merged(self, config):
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder)
        a = _src(config, 'ch', 'a.tex')
        b = _src(config, 'ch', 'b.tex')
        for path in (a, b, a, a):
            watcher.file_changed(path)
        watcher.flush()
        assert builder.calls == [(a, True), (b, True)]

    def test_full_build_supersedes_files(self, config):
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder)
        watcher.file_changed(_src(config, 'ch', 'a.tex'))
        watcher.file_changed(config.path('main_file'))
        watcher.file_changed(_src(config, 'ch', 'b.tex'))
        watcher.flush()
        assert builder.calls == [(None, False)]

    def test_flush_clears_queue(self, config):
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder)
        watcher.file_changed(_src(config, 'ch', 'a.tex'))
        watcher.flush()
        watcher.flush()
        assert len(builder.calls) == 1

    def test_timer_fires(self, config):
        config.debounce_delay = 0.01
        builder = FakeBuilder()
        watcher = watch.Watcher(config, builder)
        watcher.file_changed(_src(config, 'ch', 'a.tex'))
        timer = watcher._timer
        timer.join(5)
        assert builder.calls == [(_src(config, 'ch', 'a.tex'), True)]


class TestChangeHandler:
    class Recorder:
        def __init__(self):
            self.paths = []

        def file_changed(self, path):
            self.paths.append(path)

    def test_tex_events_forwarded(self):
        rec = self.Recorder()
        handler = watch.TexChangeHandler(rec)
        handler.dispatch(FileModifiedEvent('/proj/src/a.tex'))
        handler.dispatch(FileModifiedEvent('/proj/src/a.pdf'))
        handler.dispatch(DirModifiedEvent('/proj/src/ch.tex'))
        handler.dispatch(FileMovedEvent('/proj/src/.a.tex.swp', '/proj/src/b.tex'))
        assert rec.paths == ['/proj/src/a.tex', '/proj/src/b.tex']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

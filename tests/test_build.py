"""Tests for build module (no LaTeX installation needed)."""
import os
import sys
import tempfile

import pytest

try:
    from tex2html_notes import build
except ImportError:
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
    from tex2html_notes import build

from tex2html_notes.config import Config, _normalize_chapters


def _write(path, text):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)


@pytest.fixture
def project():
    with tempfile.TemporaryDirectory() as tmpdir:
        _write(os.path.join(tmpdir, 'main.tex'), "\\documentclass{article}\n")
        _write(os.path.join(tmpdir, 'build', 'main.aux'), "\\newlabel{t:1}{{1.1}{1}}\n")
        _write(os.path.join(tmpdir, 'src', '01-measure', 'outer.tex'),
               "\\begin{theorem}\\label{t:1}Outer.\\end{theorem}\n")
        _write(os.path.join(tmpdir, 'src', '01-measure', 'cara.tex'), "See \\ref{t:1}.\n")
        _write(os.path.join(tmpdir, 'src', '02-integration', 'fatou.tex'), "Fatou.\n")
        cfg = Config()
        cfg.root_dir = tmpdir
        cfg.latex_command = 'no-such-latex-binary-for-tests'
        cfg.chapters = _normalize_chapters([
            {'folder': '01-measure', 'title': 'Measure',
             'sections': [{'file': 'outer.tex', 'title': 'Outer Measures'},
                          {'file': 'cara.tex'}]},
            {'folder': '02-integration', 'sections': [{'file': 'fatou.tex'}]},
        ])
        yield cfg


class TestHelpers:
    def test_file_hash(self, project):
        path = project.path('main_file')
        digest = build.file_hash(path)
        assert len(digest) == 32
        assert build.file_hash(path) == digest
        assert build.file_hash(path + '.missing') is None

    def test_find_tex_files(self, project):
        names = [os.path.basename(p) for p in build.find_tex_files(project)]
        assert names == ['cara.tex', 'outer.tex', 'fatou.tex']
        names = [os.path.basename(p) for p in build.find_tex_files(project, '02-integration')]
        assert names == ['fatou.tex']
        assert build.find_tex_files(project, 'nope') == []

    def test_compile_missing_binary(self, project):
        assert build.compile_main(project) is None


class TestBuilder:
    def test_full_build_without_compile(self, project):
        calls = []
        builder = build.Builder(project, on_complete=lambda: calls.append(1))
        assert builder.build(skip_compile=True)
        out = project.path('output_dir')
        assert os.path.isfile(os.path.join(out, '01-measure', 'outer.html'))
        assert os.path.isfile(os.path.join(out, '02-integration', 'fatou.html'))
        with open(os.path.join(out, 'index.html'), encoding='utf-8') as f:
            index = f.read()
        assert 'href="01-measure/outer.html"' in index
        with open(os.path.join(out, '01-measure', 'outer.html'), encoding='utf-8') as f:
            page = f.read()
        assert 'Theorem 1.1' in page
        assert '<title>Outer Measures - ' in page
        assert calls == [1]

    def test_single_file(self, project):
        builder = build.Builder(project)
        target = os.path.join(project.path('src_dir'), '01-measure', 'cara.tex')
        assert builder.build(target_file=target, skip_compile=True)
        out = project.path('output_dir')
        assert os.path.isfile(os.path.join(out, '01-measure', 'cara.html'))
        assert not os.path.exists(os.path.join(out, 'index.html'))
        assert not os.path.exists(os.path.join(out, '02-integration'))

    def test_chapter(self, project):
        builder = build.Builder(project)
        assert builder.build(chapter='02-integration', skip_compile=True)
        out = project.path('output_dir')
        assert os.path.isfile(os.path.join(out, '02-integration', 'fatou.html'))
        assert not os.path.exists(os.path.join(out, '01-measure'))

    def test_failed_compile_still_converts(self, project):
        builder = build.Builder(project)
        assert builder.needs_compile()
        assert builder.build()
        assert os.path.isfile(os.path.join(project.path('output_dir'), '01-measure', 'outer.html'))

    def test_unreadable_file_reported(self, project):
        bad = os.path.join(project.path('src_dir'), '02-integration', 'bad.tex')
        with open(bad, 'wb') as f:
            f.write(b'\xff\xfe\xfa')
        builder = build.Builder(project)
        assert not builder.build(skip_compile=True)
        assert builder.failures == [bad]
        assert os.path.isfile(os.path.join(project.path('output_dir'), '02-integration', 'fatou.html'))

    def test_overlapping_build_skipped(self, project):
        builder = build.Builder(project)
        builder._lock.acquire()
        try:
            assert builder.build(skip_compile=True) is False
        finally:
            builder._lock.release()
        assert not os.path.exists(project.path('output_dir'))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

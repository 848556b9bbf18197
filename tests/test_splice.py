"""Tests for splice module."""
import os
import sys

import pytest

try:
    from tex2html_notes import splice
except ImportError:
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
    from tex2html_notes import splice

from tex2html_notes.environments import Element, ExtractionContext, extract_elements


def _element(text, raw, html, start=None):
    start = text.index(raw) if start is None else start
    el = Element(start, start + len(raw), raw)
    el.html = html
    return el


class TestSplice:
    def test_replaces_in_order(self):
        text = "a [X] b [Y] c"
        els = [_element(text, '[Y]', 'y'), _element(text, '[X]', 'x')]
        assert splice.splice(text, els) == "a x b y c"

    def test_replacement_length_does_not_shift_later_offsets(self):
        text = "[1][2][3]"
        els = [_element(text, '[1]', 'a much longer replacement'),
               _element(text, '[2]', ''),
               _element(text, '[3]', 'three')]
        assert splice.splice(text, els) == "a much longer replacementthree"

    def test_mismatch_skipped_with_error(self):
        ctx = ExtractionContext()
        text = "keep [X] and [Y]"
        good = _element(text, '[Y]', 'y')
        stale = _element(text, '[X]', 'x')
        stale.raw = '[Z]'
        result = splice.splice(text, [stale, good], ctx)
        assert result == "keep [X] and y"
        assert len(ctx.diagnostics) == 1
        assert ctx.diagnostics[0].startswith('ERROR:')

    def test_overlap_skipped(self):
        ctx = ExtractionContext()
        text = "0123456789"
        outer = _element(text, '2345', 'O')
        inner = _element(text, '45', 'I')
        assert splice.splice(text, [outer, inner], ctx) == "01O6789"
        assert 'Overlapping' in ctx.diagnostics[0]

    def test_offset_integrity_on_extracted_elements(self):
        text = ("Intro text.\n\n\\section{One}\n\\begin{theorem}\\label{t}T\\end{theorem}\n"
                "middle\n\\begin{proof}P\\end{proof}\n\\begin{enumerate}\\item i\\end{enumerate}\nend")
        ctx = ExtractionContext()
        elements = extract_elements(text, ctx)
        result = splice.splice(text, elements, ctx)
        assert not [d for d in ctx.diagnostics if d.startswith('ERROR')]
        assert result.startswith("Intro text.")
        assert result.rstrip().endswith("end")
        assert "\nmiddle\n" in result
        for el in elements:
            assert el.raw not in result


class TestWrapParagraphs:
    def test_paragraphs_and_blocks(self):
        text = "one\n\ntwo\nlines\n\n<div>block</div>\n\n\\noindent three"
        assert splice.wrap_paragraphs(text) == (
            "<p>one</p>\n\n<p>two\nlines</p>\n\n<div>block</div>\n\n"
            "<p class=\"noindent\">three</p>")

    def test_display_math_not_split(self):
        text = "before\n\n\\begin{align}\na\n\nb\n\\end{align}\n\nafter"
        result = splice.wrap_paragraphs(text)
        assert "\\begin{align}\na\n\nb\n\\end{align}" in result
        assert "<p>\\begin{align}" not in result

    def test_math_inside_paragraph_kept(self):
        result = splice.wrap_paragraphs("Let $x$ be \\[ y \\] here")
        assert result == "<p>Let $x$ be \\[ y \\] here</p>"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

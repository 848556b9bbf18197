"""Tests for references module."""
import os
import sys

import pytest

try:
    from tex2html_notes import references
except ImportError:
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
    from tex2html_notes import references

from tex2html_notes.auxfile import LabelEntry
from tex2html_notes.environments import ExtractionContext


LABELS = {
    'eq:main': LabelEntry('2.3', '4', '', 'equation.2.3'),
    't:1': LabelEntry('1.2', '3', '', 't:1'),
    's:intro': LabelEntry('1', '1', 'Intro', 'section.1'),
}


class TestLinkReferences:
    def test_resolved_link(self):
        html = references.link_references(r"see \ref{t:1}", LABELS)
        assert html == 'see <a href="#t:1" class="ref-link">1.2</a>'

    def test_anchor_from_aux(self):
        html = references.link_references(r"\eqref{eq:main}", LABELS)
        assert 'href="#equation.2.3"' in html
        assert '>2.3</a>' in html

    def test_all_reference_commands(self):
        for cmd in ('ref', 'eqref', 'cref', 'Cref', 'autoref'):
            html = references.link_references('\\%s{t:1}' % cmd, LABELS)
            assert 'class="ref-link"' in html

    def test_multiple_labels(self):
        html = references.link_references(r"\cref{t:1,s:intro}", LABELS)
        assert html.count('class="ref-link"') == 2
        assert '>1.2</a>, <a' in html

    def test_unresolved_marker(self):
        ctx = ExtractionContext()
        html = references.link_references(r"see \ref{missing-label}", {}, ctx)
        assert 'missing-label' in html
        assert 'ref-unknown' in html
        assert 'ref-link' not in html
        assert '<a ' not in html
        assert any('missing-label' in d for d in ctx.diagnostics)

    def test_marker_escapes_label(self):
        html = references.link_references(r'\ref{a"b}', {})
        assert 'a&quot;b' in html


class TestMathReferences:
    def test_plain_number_in_display_math(self):
        text = "\\begin{align*}\nx &= y \\quad \\text{by } \\eqref{eq:main}\n\\end{align*}"
        html = references.resolve_math_references(text, LABELS)
        assert '2.3' in html
        assert '<a' not in html
        assert '\\eqref' not in html

    def test_unresolved_in_math(self):
        text = "\\begin{equation}\\ref{nope}\\end{equation}"
        assert '[nope?]' in references.resolve_math_references(text, {})

    def test_prose_untouched_by_math_pass(self):
        text = r"prose \ref{t:1}"
        assert references.resolve_math_references(text, LABELS) == text

    def test_math_pass_then_link_pass(self):
        text = "\\begin{equation}\\ref{t:1}\\end{equation} and \\ref{t:1}"
        html = references.resolve_math_references(text, LABELS)
        html = references.link_references(html, LABELS)
        assert html.count('<a ') == 1
        assert html.startswith('\\begin{equation}1.2\\end{equation}')


class TestAnchorLabels:
    def test_prose_label(self):
        html = references.anchor_labels(r"text\label{s:intro}", LABELS)
        assert html == 'text<span class="label-anchor" id="section.1"></span>'

    def test_unknown_label_uses_name(self):
        html = references.anchor_labels(r"\label{foo}", {})
        assert 'id="foo"' in html

    def test_math_label_untouched(self):
        text = "\\begin{equation}x\\label{eq:main}\\end{equation}"
        assert references.anchor_labels(text, LABELS) == text


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

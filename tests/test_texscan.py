"""Tests for texscan module."""
import os
import sys

import pytest

try:
    from tex2html_notes import texscan
except ImportError:
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
    from tex2html_notes import texscan


class TestFindEnvironmentEnd:
    def test_flat(self):
        text = r"\begin{proof}abc\end{proof}"
        end = texscan.find_environment_end(text, 'proof', len(r"\begin{proof}"))
        assert text[end:] == r"\end{proof}"

    def test_nested_depth(self):
        text = r"\begin{proof}A\begin{proof}B\end{proof}C\end{proof}tail"
        end = texscan.find_environment_end(text, 'proof', len(r"\begin{proof}"))
        assert text[end:] == r"\end{proof}tail"

    def test_non_nested_takes_first_end(self):
        text = r"\begin{proof}A\begin{proof}B\end{proof}C\end{proof}"
        end = texscan.find_environment_end(
            text, 'proof', len(r"\begin{proof}"), nested=False)
        assert end == text.index(r"\end{proof}")

    def test_unterminated(self):
        text = r"\begin{proof}A\begin{proof}B\end{proof}"
        assert texscan.find_environment_end(text, 'proof', len(r"\begin{proof}")) == -1


class TestIterEnvironments:
    def test_option_and_body(self):
        text = "x \\begin{theorem}[Fatou]\nBody\n\\end{theorem} y"
        spans = list(texscan.iter_environments(text, 'theorem'))
        assert len(spans) == 1
        span = spans[0]
        assert span.option == 'Fatou'
        assert text[span.body_start:span.body_end] == "\nBody\n"
        assert text[span.start:span.end].startswith("\\begin{theorem}")
        assert text[span.start:span.end].endswith("\\end{theorem}")

    def test_option_on_next_line(self):
        text = "\\begin{enumerate}\n[(a)]\n\\item x\n\\end{enumerate}"
        span = next(texscan.iter_environments(text, 'enumerate'))
        assert span.option == '(a)'

    def test_nested_yields_outer_only(self):
        text = r"\begin{proof}A\begin{proof}B\end{proof}\end{proof}\begin{proof}C\end{proof}"
        spans = list(texscan.iter_environments(text, 'proof'))
        assert len(spans) == 2
        assert spans[0].end == spans[1].start

    def test_unterminated_reported_and_skipped(self):
        seen = []
        text = r"\begin{proof}never closed \begin{remark}x\end{remark}"
        spans = list(texscan.iter_environments(
            text, 'proof', on_unterminated=seen.append))
        assert spans == []
        assert seen == [0]


class TestReadBraceGroup:
    def test_balanced(self):
        assert texscan.read_brace_group("{a{b}c}rest", 0) == ("a{b}c", 7)

    def test_escaped_brace(self):
        content, _ = texscan.read_brace_group(r"{a\}b}", 0)
        assert content == r"a\}b"

    def test_unbalanced(self):
        assert texscan.read_brace_group("{abc", 0) == (None, 0)

    def test_no_group(self):
        assert texscan.read_brace_group("abc", 0) == (None, 0)


class TestMasking:
    def test_mask_keeps_length_and_newlines(self):
        text = "abc\\begin{x}\nyy\\end{x}def"
        span = texscan.Span('x', 3, len(text) - 3, 0, 0)
        masked = texscan.mask_spans(text, [span])
        assert len(masked) == len(text)
        assert masked.startswith('abc') and masked.endswith('def')
        assert masked.count('\n') == 1
        assert 'begin' not in masked

    def test_drop_nested_outer_wins(self):
        outer = texscan.Span('a', 0, 100, 0, 0)
        inner = texscan.Span('b', 10, 20, 0, 0)
        after = texscan.Span('c', 100, 120, 0, 0)
        assert texscan.drop_nested([inner, after, outer]) == [outer, after]


class TestProtectMath:
    def test_round_trip(self):
        text = r"a $x_1$ b \[ y \] c \begin{align*} z \end{align*} d $$w$$"
        protected, store = texscan.protect_math(text)
        assert '$' not in protected
        assert 'align' not in protected
        assert texscan.restore_math(protected, store) == text

    def test_escaped_dollar_is_text(self):
        protected, store = texscan.protect_math(r"costs \$5 and \$6")
        assert store == []

    def test_row_spacing_not_display_math(self):
        protected, store = texscan.protect_math(r"a \\[6pt] b", inline=False)
        assert store == []

    def test_display_only(self):
        protected, store = texscan.protect_math(r"$x$ and \[y\]", inline=False)
        assert '$x$' in protected
        assert len(store) == 1


class TestProtectTags:
    def test_round_trip(self):
        text = '<a href="#a--b" class="ref-link">1--2</a> x < y'
        protected, store = texscan.protect_tags(text)
        assert '--b' not in protected
        assert '1--2' in protected
        assert ' x < y' in protected
        assert texscan.restore_tags(protected, store) == text


class TestHeadings:
    def test_title_and_label(self):
        text = "\\section*{A {b}}\n\\label{s:a} body \\subsection{C}"
        headings = list(texscan.iter_headings(text))
        assert [(h.level, h.title, h.starred, h.label) for h in headings] == [
            (2, 'A {b}', True, 's:a'), (3, 'C', False, None)]
        assert text[headings[0].start:headings[0].end] == "\\section*{A {b}}\n\\label{s:a}"

    def test_unbalanced_reported(self):
        seen = []
        assert list(texscan.iter_headings("\\section{open", seen.append)) == []
        assert len(seen) == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

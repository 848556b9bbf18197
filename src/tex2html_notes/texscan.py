#!/usr/bin/env python3
"""
texscan.py - Low-level scanning helpers shared by the converters

  - find_environment_end: forward scanner with an explicit nesting depth
  - iter_environments:    every top-level \\begin{name}...\\end{name} block
  - read_option / read_brace_group: optional [..] and balanced {..} arguments
  - drop_nested / mask_spans: overlap resolution and equal-length masking
  - iter_headings: \\section-like commands with their titles and labels
  - protect_math / restore_math: keep math away from text rewrites
  - protect_tags / restore_tags: keep generated HTML tags away from them too
"""

import re


THEOREM_TYPES = (
    'theorem', 'lemma', 'proposition', 'corollary', 'definition',
    'example', 'remark', 'conjecture', 'claim', 'fact', 'notation',
    'axiom', 'construction', 'exercise', 'problem',
)


class Span:
    """One \\begin{name}...\\end{name} block found in a text.

    start/end cover the whole block (half-open), body_start/body_end the
    content between the optional argument and \\end{name}.
    """

    __slots__ = ('name', 'start', 'end', 'body_start', 'body_end', 'option')

    def __init__(self, name, start, end, body_start, body_end, option=None):
        self.name = name
        self.start = start
        self.end = end
        self.body_start = body_start
        self.body_end = body_end
        self.option = option

    def __repr__(self):
        return f"Span({self.name!r}, {self.start}, {self.end})"


def begin_token(name):
    return '\\begin{%s}' % name


def end_token(name):
    return '\\end{%s}' % name


def find_environment_end(text, name, pos, nested=True):
    """Find the \\end{name} that closes an environment whose body starts at pos.

    With nested=True every further \\begin{name} before the closing token
    raises the depth by one and every \\end{name} lowers it; the block ends
    at the \\end{name} that brings the depth to 0. The cursor only moves
    forward.

    Returns the index of the closing \\end{name}, or -1 if unterminated.
    """
    open_tok = begin_token(name)
    close_tok = end_token(name)
    depth = 1
    cursor = pos
    while True:
        next_end = text.find(close_tok, cursor)
        if next_end == -1:
            return -1
        next_begin = text.find(open_tok, cursor, next_end) if nested else -1
        if next_begin != -1:
            depth += 1
            cursor = next_begin + len(open_tok)
            continue
        depth -= 1
        if depth == 0:
            return next_end
        cursor = next_end + len(close_tok)


_OPTION_RE = re.compile(r'[ \t]*\n?[ \t]*\[([^\]]*)\]')


def read_option(text, pos):
    """Read an optional [..] argument at pos (LaTeX skips one line break).

    Returns (option or None, position after it).
    """
    m = _OPTION_RE.match(text, pos)
    if m:
        return m.group(1), m.end()
    return None, pos


def read_brace_group(text, pos):
    """Read a balanced {..} group starting at text[pos] (after whitespace).

    Returns (content, position after the closing brace), or (None, pos) when
    there is no group or it is unbalanced.
    """
    start = pos
    while start < len(text) and text[start] in ' \t\n':
        start += 1
    if start >= len(text) or text[start] != '{':
        return None, pos
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch == '\\':
            i += 2
            continue
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return text[start + 1:i], i + 1
        i += 1
    return None, pos


def iter_environments(text, name, nested=True, with_option=True, on_unterminated=None):
    """Yield a Span for every top-level \\begin{name}...\\end{name} in text.

    Blocks nested inside an earlier yielded block are part of it and are not
    yielded separately. An unterminated \\begin{name} is reported through
    on_unterminated(position) and scanning resumes right after it.
    """
    open_tok = begin_token(name)
    close_tok = end_token(name)
    pos = 0
    while True:
        start = text.find(open_tok, pos)
        if start == -1:
            return
        after = start + len(open_tok)
        option = None
        body_start = after
        if with_option:
            option, body_start = read_option(text, after)
        close = find_environment_end(text, name, body_start, nested=nested)
        if close == -1:
            if on_unterminated is not None:
                on_unterminated(start)
            pos = after
            continue
        end = close + len(close_tok)
        yield Span(name, start, end, body_start, close, option)
        pos = end


def drop_nested(items):
    """Keep only items that do not overlap an earlier-starting kept item.

    items need .start and .end; the result is sorted by start. On equal
    starts the longer item wins.
    """
    kept = []
    cursor = -1
    for item in sorted(items, key=lambda it: (it.start, -it.end)):
        if item.start >= cursor:
            kept.append(item)
            cursor = item.end
    return kept


def mask_spans(text, spans):
    """Overwrite every span with spaces of identical length.

    Line breaks inside a span are kept so line-oriented patterns do not see
    two lines glued together; all offsets stay unchanged.
    """
    if not spans:
        return text
    chars = list(text)
    for span in spans:
        for i in range(span.start, span.end):
            if chars[i] != '\n':
                chars[i] = ' '
    return ''.join(chars)


# ============================================================================
# HEADINGS
# ============================================================================
SECTION_RE = re.compile(r'\\(section|subsection|subsubsection)(\*?)(?=\s*\{)')

SECTION_LEVELS = {'section': 2, 'subsection': 3, 'subsubsection': 4}

_FOLLOWING_LABEL_RE = re.compile(r'[ \t]*\n?[ \t]*\\label\{([^}]+)\}')


class Heading:
    """One \\section-like command with its title and an optional \\label."""

    __slots__ = ('start', 'end', 'level', 'title', 'starred', 'label')

    def __init__(self, start, end, level, title, starred=False, label=None):
        self.start = start
        self.end = end
        self.level = level
        self.title = title
        self.starred = starred
        self.label = label


def iter_headings(text, on_unbalanced=None):
    """Yield a Heading for every sectioning command in text.

    A \\label directly after the title is folded into the heading. A title
    without a closing brace is reported through on_unbalanced(match).
    """
    cursor = 0
    for m in SECTION_RE.finditer(text):
        if m.start() < cursor:
            continue
        title, end = read_brace_group(text, m.end())
        if title is None:
            if on_unbalanced is not None:
                on_unbalanced(m)
            continue
        label = None
        lm = _FOLLOWING_LABEL_RE.match(text, end)
        if lm:
            label = lm.group(1)
            end = lm.end()
        cursor = end
        yield Heading(m.start(), end, SECTION_LEVELS[m.group(1)], title.strip(),
                      starred=bool(m.group(2)), label=label)


# ============================================================================
# MATH PROTECTION
# ============================================================================
_MATH_PLACEHOLDER = '\x00MATH_%d\x00'
MATH_PLACEHOLDER_RE = re.compile('\x00MATH_(\\d+)\x00')

DISPLAY_MATH_ENVS = ('align', 'equation', 'gather', 'multline')

DISPLAY_MATH_RE = re.compile(
    r'\\begin\{(' + '|'.join(DISPLAY_MATH_ENVS) + r')(\*?)\}.*?\\end\{\1\2\}',
    re.DOTALL)


def protect_math(text, inline=True):
    """Replace math with placeholders to avoid mangling by other conversions.

    Handles: $$...$$, \\[...\\] (not the \\\\[6pt] row spacing),
    align/equation/gather/multline (starred too) and, with inline=True,
    \\(...\\) and $...$.

    Returns (text, store); pass both to restore_math.
    """
    store = []

    def save(m):
        store.append(m.group(0))
        return _MATH_PLACEHOLDER % (len(store) - 1)

    text = DISPLAY_MATH_RE.sub(save, text)
    text = re.sub(r'\$\$.*?\$\$', save, text, flags=re.DOTALL)
    text = re.sub(r'(?<!\\)\\\[.*?\\\]', save, text, flags=re.DOTALL)
    if inline:
        text = re.sub(r'\\\(.*?\\\)', save, text, flags=re.DOTALL)
        text = re.sub(
            r'(?<![\$\\])\$(?!\$)((?:[^$\\]|\\.)+?)\$(?!\$)', save, text)
    return text, store


def restore_math(text, store):
    """Restore math placeholders back to their original content."""
    if not store:
        return text
    # An unbalanced $ can swallow an earlier placeholder, hence the loop
    while MATH_PLACEHOLDER_RE.search(text):
        text = MATH_PLACEHOLDER_RE.sub(lambda m: store[int(m.group(1))], text)
    return text


_TAG_PLACEHOLDER = '\x00TAG_%d\x00'
_TAG_PLACEHOLDER_RE = re.compile('\x00TAG_(\\d+)\x00')

HTML_TAG_RE = re.compile(r'</?[A-Za-z][^<>]*>')


def protect_tags(text):
    """Replace generated HTML tags with placeholders.

    Attribute values (image paths, ids, onclick handlers) must not go
    through the text rewrites. Returns (text, store); pass both to
    restore_tags.
    """
    store = []

    def save(m):
        store.append(m.group(0))
        return _TAG_PLACEHOLDER % (len(store) - 1)

    return HTML_TAG_RE.sub(save, text), store


def restore_tags(text, store):
    if not store:
        return text
    return _TAG_PLACEHOLDER_RE.sub(lambda m: store[int(m.group(1))], text)

#!/usr/bin/env python3
"""
splice.py - Offset-stable replacement of extracted elements

All elements are located against the same text before anything is replaced,
then substituted in one left-to-right pass with an output cursor. Every
replacement checks that the text at the element's offsets is still exactly
the raw source recorded at extraction time; a mismatch or an overlap skips
that element (left as raw LaTeX) and reports an error instead of corrupting
the document.
"""

import re

from .texscan import MATH_PLACEHOLDER_RE, protect_math, restore_math


BLOCK_START_RE = re.compile(r'<(?:figure|h\d|div|ol|ul|table|pre)\b')


def splice(text, elements, ctx=None):
    """Replace every element's [start, end) span of text with its HTML.

    Args:
        text: The text the elements were extracted from.
        elements: Objects with start, end, raw and html attributes.
        ctx: Optional context receiving trace output and error diagnostics.

    Returns:
        The spliced text.
    """
    out = []
    cursor = 0
    for el in sorted(elements, key=lambda e: e.start):
        if el.start < cursor:
            _report(ctx, f"Overlapping {el.kind} at {el.start} skipped "
                         f"(previous replacement ends at {cursor})")
            continue
        if text[el.start:el.end] != el.raw:
            _report(ctx, f"Source mismatch for {el.kind} at {el.start}-{el.end}, "
                         f"left unconverted")
            continue
        if ctx is not None:
            ctx.trace(f"Replacing {el.kind} at {el.start}-{el.end} "
                      f"({len(el.raw)} -> {len(el.html)} chars)")
        out.append(text[cursor:el.start])
        out.append(el.html)
        cursor = el.end
    out.append(text[cursor:])
    return ''.join(out)


def _report(ctx, msg):
    if ctx is not None:
        ctx.error(msg)


def wrap_paragraphs(text):
    """Split on blank lines and wrap non-block chunks in <p>.

    Display math is protected first so a blank line inside it never splits a
    paragraph. A chunk that is display math on its own is left unwrapped, as
    are chunks starting with a block tag. A leading \\noindent gives
    <p class="noindent">.
    """
    text, store = protect_math(text, inline=False)
    result = []
    for chunk in re.split(r'\n\s*\n', text):
        chunk = chunk.strip()
        if not chunk:
            continue
        if BLOCK_START_RE.match(chunk) or MATH_PLACEHOLDER_RE.fullmatch(chunk):
            result.append(chunk)
        elif chunk.startswith('\\noindent'):
            rest = chunk[len('\\noindent'):].lstrip()
            result.append(f'<p class="noindent">{rest}</p>')
        else:
            result.append(f'<p>{chunk}</p>')
    return restore_math('\n\n'.join(result), store)

#!/usr/bin/env python3
"""
references.py - Cross-reference resolution against the label table

Two passes, run on the spliced document in this order:

  1. resolve_math_references: inside align/equation/gather/multline
     (starred too) a reference becomes the bare number, because MathJax
     renders that text and cannot contain links.
  2. link_references: every remaining reference becomes
     <a href="#ANCHOR" class="ref-link">NUMBER</a>, or a flagged
     "reference not found" marker.

anchor_labels finally turns \\label commands left in prose into empty anchor
spans so links to plain paragraphs have a target.
"""

import html
import re

from .texscan import DISPLAY_MATH_RE, protect_math, restore_math


REF_RE = re.compile(r'\\(?:ref|eqref|cref|Cref|autoref)\*?\{([^}]+)\}')

LABEL_RE = re.compile(r'\\label\{([^}]+)\}')


def _names(group):
    # \cref{a,b} refers to several labels at once
    return [name.strip() for name in group.split(',') if name.strip()]


def _warn(ctx, msg):
    if ctx is not None:
        ctx.warn(msg)


def resolve_math_references(text, labels, ctx=None):
    """Replace references inside display math by plain numbers."""

    def plain(m):
        parts = []
        for name in _names(m.group(1)):
            entry = labels.get(name)
            if entry is None:
                _warn(ctx, f"Reference not found in math: {name}")
                parts.append(f'[{name}?]')
            else:
                parts.append(entry.number)
        return ', '.join(parts)

    return DISPLAY_MATH_RE.sub(lambda env: REF_RE.sub(plain, env.group(0)), text)


def link_references(text, labels, ctx=None):
    """Replace references outside display math by links to their anchors."""

    def link(m):
        parts = []
        for name in _names(m.group(1)):
            entry = labels.get(name)
            if entry is None:
                _warn(ctx, f"Reference not found: {name}")
                safe = html.escape(name, quote=True)
                parts.append(f'<span class="ref-unknown" '
                             f'title="Reference not found: {safe}">[{safe}?]</span>')
            else:
                anchor = html.escape(entry.anchor or name, quote=True)
                parts.append(f'<a href="#{anchor}" class="ref-link">{entry.number}</a>')
        return ', '.join(parts)

    return REF_RE.sub(link, text)


def anchor_labels(text, labels):
    """Turn \\label commands outside math into empty anchor spans."""
    text, store = protect_math(text)

    def anchor(m):
        name = m.group(1)
        entry = labels.get(name)
        target = entry.anchor if entry is not None and entry.anchor else name
        return f'<span class="label-anchor" id="{html.escape(target, quote=True)}"></span>'

    text = LABEL_RE.sub(anchor, text)
    return restore_math(text, store)

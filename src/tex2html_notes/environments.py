#!/usr/bin/env python3
"""
environments.py - Two-phase extraction of block environments

Phase 1 runs over the full text and finds theorem-like environments and
proofs (arbitrarily nested). Their regions are then masked with spaces of
equal length so Phase 2 cannot see inside them, and Phase 2 finds section
headings, figures and lists. Every element carries its half-open [start, end)
offsets, the exact raw source and the generated HTML fragment, ready for the
splicer.

Usage:
  from tex2html_notes.environments import ExtractionContext, extract_elements

  ctx = ExtractionContext(labels=labels, image_base='../../figures')
  elements = extract_elements(text, ctx)
"""

import re
import sys

from . import content
from .texscan import (
    THEOREM_TYPES, iter_environments, iter_headings, drop_nested, mask_spans,
)


# ============================================================================
# ENVIRONMENT TABLES
# ============================================================================
THEOREM_END_RE = re.compile(
    r'\\end\{(?:' + '|'.join(THEOREM_TYPES) + r')\}')

LABEL_RE = re.compile(r'\\label\{([^}]+)\}')

LIST_TYPES = ('enumerate', 'itemize')


# ============================================================================
# EXTRACTION CONTEXT
# ============================================================================
class ExtractionContext:
    """Per-conversion state: counters, used ids, labels and diagnostics.

    One context is created for each converted file, so converting the same
    source twice always yields the same ids.
    """

    def __init__(self, labels=None, image_base='', verbose=False):
        self.labels = labels if labels is not None else {}
        self.image_base = image_base
        self.verbose = verbose
        self.type_counts = {}
        self.used_ids = set()
        self.proof_ordinal = 0
        self.diagnostics = []

    def warn(self, msg):
        print(f"  WARNING: {msg}", file=sys.stderr)
        self.diagnostics.append(f"WARNING: {msg}")

    def error(self, msg):
        print(f"  ERROR: {msg}", file=sys.stderr)
        self.diagnostics.append(f"ERROR: {msg}")

    def trace(self, msg):
        if self.verbose:
            print(f"  {msg}", file=sys.stderr)

    def count(self, env_name):
        """Bump and return the occurrence count of an environment name."""
        self.type_counts[env_name] = self.type_counts.get(env_name, 0) + 1
        return self.type_counts[env_name]

    def claim_id(self, base):
        """Reserve base as an id, appending -1, -2, ... on collision."""
        candidate = base
        suffix = 1
        while candidate in self.used_ids:
            candidate = f'{base}-{suffix}'
            suffix += 1
        self.used_ids.add(candidate)
        return candidate

    def resolve(self, label):
        """Return the LabelEntry for a label name, or None."""
        if not label:
            return None
        return self.labels.get(label)


# ============================================================================
# ELEMENTS
# ============================================================================
class Element:
    """A located block in the source text and its generated HTML."""

    kind = None

    def __init__(self, start, end, raw):
        self.start = start
        self.end = end
        self.raw = raw
        self.html = ''

    def __repr__(self):
        return f"{type(self).__name__}({self.start}, {self.end})"


class TheoremElement(Element):
    kind = 'theorem'

    def __init__(self, start, end, raw, env_name, title=None, label=None,
                 number='?', body_html='', type_count=0):
        super().__init__(start, end, raw)
        self.env_name = env_name
        self.title = title
        self.label = label
        self.number = number
        self.body_html = body_html
        self.type_count = type_count


class ProofElement(Element):
    kind = 'proof'

    def __init__(self, start, end, raw, title=None, stable_id='',
                 body_html='', ordinal=0):
        super().__init__(start, end, raw)
        self.title = title
        self.stable_id = stable_id
        self.body_html = body_html
        self.ordinal = ordinal


class SectionElement(Element):
    kind = 'section'

    def __init__(self, start, end, raw, level, title, starred=False, label=None):
        super().__init__(start, end, raw)
        self.level = level
        self.title = title
        self.starred = starred
        self.label = label


class FigureElement(Element):
    kind = 'figure'

    def __init__(self, start, end, raw, caption='', label=None, body_html=''):
        super().__init__(start, end, raw)
        self.caption = caption
        self.label = label
        self.body_html = body_html


class ListElement(Element):
    kind = 'list'

    def __init__(self, start, end, raw, env_name, option=None, body_html=''):
        super().__init__(start, end, raw)
        self.env_name = env_name
        self.option = option
        self.body_html = body_html


# ============================================================================
# PHASE 1: THEOREMS AND PROOFS
# ============================================================================
def _unterminated(ctx, name):
    def report(pos):
        ctx.warn(f"Unterminated \\begin{{{name}}} at offset {pos}, left as-is")
    return report


def find_theorems(text, ctx):
    """Spans of theorem-like environments (first \\end{NAME} closes them)."""
    spans = []
    for name in THEOREM_TYPES:
        spans.extend(iter_environments(
            text, name, nested=False, on_unterminated=_unterminated(ctx, name)))
    return spans


def find_proofs(text, ctx):
    """Spans of top-level proofs, nesting resolved by the depth scanner."""
    return list(iter_environments(
        text, 'proof', nested=True, on_unterminated=_unterminated(ctx, 'proof')))


def proof_label(text, start):
    """Label a proof at start belongs to, or None.

    Picks the nearest \\label before the proof that comes after the last
    theorem-like \\end{...}; labels inside an earlier theorem belong to it.
    """
    region_start = 0
    for m in THEOREM_END_RE.finditer(text, 0, start):
        region_start = m.end()
    found = LABEL_RE.findall(text, region_start, start)
    return found[-1] if found else None


def build_theorem(text, span, ctx):
    body = text[span.body_start:span.body_end]
    label_m = LABEL_RE.search(body)
    label = label_m.group(1) if label_m else None
    if label_m:
        body = body[:label_m.start()] + body[label_m.end():]

    entry = ctx.resolve(label)
    if label and entry is None:
        ctx.warn(f"Label of {span.name} not in aux file: {label}")
    number = entry.number if entry else '?'
    type_count = ctx.count(span.name)

    el = TheoremElement(
        span.start, span.end, text[span.start:span.end], span.name,
        title=span.option, label=label, number=number,
        type_count=type_count)
    el.body_html = content.render_body(body, ctx, label or f'{span.name}-{type_count}')
    el.html = content.render_theorem(
        span.name, number, span.option, label, type_count, el.body_html, entry)
    return el


def build_proof(text, span, ctx):
    label = proof_label(text, span.start)
    ordinal = ctx.proof_ordinal
    ctx.proof_ordinal += 1
    if label:
        base = f'proof-for-{label}'
    elif span.option:
        base = f'proof-{content.slugify(span.option)}'
    else:
        base = f'proof-num-{ordinal}'

    el = ProofElement(
        span.start, span.end, text[span.start:span.end],
        title=span.option, stable_id=ctx.claim_id(base), ordinal=ordinal)
    el.body_html = content.render_body(
        text[span.body_start:span.body_end], ctx, el.stable_id)
    el.html = content.render_proof(el.stable_id, el.title, el.body_html)
    return el


# ============================================================================
# PHASE 2: SECTIONS, FIGURES, LISTS
# ============================================================================
def find_sections(text, ctx):
    """Section headings with a brace-balanced title and optional \\label."""
    def unbalanced(m):
        ctx.warn(f"Unbalanced \\{m.group(1)} title at offset {m.start()}")

    elements = []
    for h in iter_headings(text, unbalanced):
        el = SectionElement(
            h.start, h.end, text[h.start:h.end],
            level=h.level, title=h.title, starred=h.starred, label=h.label)
        el.html = content.render_section(
            el.level, el.title, h.label, ctx.resolve(h.label))
        elements.append(el)
    return elements


def find_figures(text, ctx):
    return list(iter_environments(
        text, 'figure', nested=True, on_unterminated=_unterminated(ctx, 'figure')))


def find_lists(text, ctx):
    spans = []
    for name in LIST_TYPES:
        spans.extend(iter_environments(
            text, name, nested=True, on_unterminated=_unterminated(ctx, name)))
    return spans


def _body_with(text, span, inner):
    """Body of span with the already built elements in inner replaced by their HTML."""
    out = []
    cursor = span.body_start
    for el in inner:
        out.append(text[cursor:el.start])
        out.append(el.html)
        cursor = el.end
    out.append(text[cursor:span.body_end])
    return ''.join(out)


def build_figure(text, span, ctx, inner=()):
    body = _body_with(text, span, inner)
    caption, label, body_html = content.process_figure(body, ctx)
    el = FigureElement(
        span.start, span.end, text[span.start:span.end],
        caption=caption, label=label, body_html=body_html)
    el.html = content.render_figure(caption, label, body_html, ctx.resolve(label))
    return el


def build_list(text, span, ctx, inner=()):
    body = _body_with(text, span, inner)
    el = ListElement(
        span.start, span.end, text[span.start:span.end], span.name,
        option=span.option)
    el.body_html = content.convert_blocks(body, ctx)
    el.html = content.render_list(span.name, span.option, el.body_html)
    return el


# ============================================================================
# EXTRACTION
# ============================================================================
def extract_elements(text, ctx):
    """Find every block element of text, sorted by start offset.

    Phase 1 elements are masked before Phase 2 runs. A list or figure can
    still enclose a Phase 1 element (an exercise list with proofs); that
    element is then rendered inside the enclosing body instead of being
    returned on its own, so the result never contains overlapping elements.
    Within a phase an element nested inside an earlier one is left to the
    enclosing element's body rendering.
    """
    phase1 = drop_nested(find_theorems(text, ctx) + find_proofs(text, ctx))
    built = []
    for span in phase1:
        if span.name == 'proof':
            built.append(build_proof(text, span, ctx))
        else:
            built.append(build_theorem(text, span, ctx))
        ctx.trace(f"Found {span.name} at {span.start}-{span.end}")

    masked = mask_spans(text, phase1)

    phase2 = find_sections(masked, ctx)
    for span in find_figures(masked, ctx):
        phase2.append(span)
    for span in find_lists(masked, ctx):
        phase2.append(span)

    elements = []
    enclosed = set()
    for item in drop_nested(phase2):
        if isinstance(item, Element):
            el = item
        else:
            inner = [p for p in built
                     if item.body_start <= p.start and p.end <= item.body_end]
            enclosed.update(id(p) for p in inner)
            if item.name == 'figure':
                el = build_figure(text, item, ctx, inner)
            else:
                el = build_list(text, item, ctx, inner)
        elements.append(el)
        ctx.trace(f"Found {el.kind} at {el.start}-{el.end}")

    elements.extend(p for p in built if id(p) not in enclosed)
    elements.sort(key=lambda el: el.start)
    return elements

#!/usr/bin/env python3
"""
content.py - Body transforms and HTML fragments for extracted environments

Turns the LaTeX body of a theorem, proof, figure or list into HTML and wraps
it in the fragment markup the page scripts expect (collapsible proof boxes,
theorem boxes, figures, lists). Also hosts the text-level passes that run
over the whole spliced document: layout commands, accents and inline
formatting.

Every fragment returned by a render_* function is surrounded by blank lines
and contains no blank line itself, so the paragraph pass never splits it.
"""

import html
import posixpath
import re
import unicodedata

from .splice import wrap_paragraphs
from .texscan import (
    THEOREM_TYPES, iter_environments, read_brace_group, drop_nested,
    protect_math, restore_math, protect_tags, restore_tags, iter_headings,
)


COLLAPSIBLE_TYPES = ('remark', 'example')

LABEL_RE = re.compile(r'\\label\{([^}]+)\}')


def slugify(title):
    slug = re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-')
    return slug or 'untitled'


def tighten(text):
    """Collapse blank lines so a fragment stays one paragraph block."""
    return re.sub(r'\n[ \t]*(?:\n[ \t]*)+', '\n', text.strip())


def block(fragment):
    return '\n\n' + tighten(fragment) + '\n\n'


def attr(value):
    return html.escape(str(value), quote=True)


def _anchor_span(label, entry):
    """Extra anchor when the aux file names a different anchor than the label."""
    if entry is None or not entry.anchor or entry.anchor == label:
        return ''
    return f'<span class="label-anchor" id="{attr(entry.anchor)}"></span>'


# ============================================================================
# BODY PIPELINE
# ============================================================================
def render_body(body, ctx, parent_id):
    """Convert the body of a theorem or proof to HTML.

    Inner theorem-like environments become boxes, inner proofs become
    subproofs (ids derived from parent_id), then figures, centred blocks and
    lists are converted and the result is wrapped in paragraphs.
    """
    text = render_inner_theorems(body.strip(), ctx, parent_id)
    text = render_subproofs(text, ctx, parent_id)
    text = convert_blocks(text, ctx)
    return tighten(wrap_paragraphs(text))


def convert_blocks(text, ctx):
    """Headings, figures, centre environments and lists inside a fragment body."""
    text = convert_headings(text, ctx)
    text = process_figures(text, ctx)
    text = convert_center(text)
    return convert_lists(text, ctx)


def _splice_spans(text, spans, render):
    out = []
    cursor = 0
    for span in spans:
        out.append(text[cursor:span.start])
        out.append(render(span))
        cursor = span.end
    out.append(text[cursor:])
    return ''.join(out)


def render_inner_theorems(text, ctx, parent_id):
    """Theorem-like environments nested in a body become theorem boxes."""
    spans = []
    for name in THEOREM_TYPES:
        spans.extend(iter_environments(text, name, nested=False))
    if not spans:
        return text

    def render(span):
        body = text[span.body_start:span.body_end]
        label_m = LABEL_RE.search(body)
        label = label_m.group(1) if label_m else None
        if label_m:
            body = body[:label_m.start()] + body[label_m.end():]
        entry = ctx.resolve(label)
        number = entry.number if entry else '?'
        type_count = ctx.count(span.name)
        body_html = render_body(
            body, ctx, label or f'{parent_id}-{span.name}-{type_count}')
        return render_theorem(span.name, number, span.option, label,
                              type_count, body_html, entry)

    return _splice_spans(text, drop_nested(spans), render)


def render_subproofs(text, ctx, parent_id):
    """Nested \\begin{proof} blocks become collapsible subproofs.

    Ids are <parent_id>-sub-<n>, counted per parent in document order.
    """
    spans = list(iter_environments(text, 'proof', nested=True))
    if not spans:
        return text
    counter = [0]

    def render(span):
        counter[0] += 1
        sub_id = ctx.claim_id(f'{parent_id}-sub-{counter[0]}')
        body_html = render_body(text[span.body_start:span.body_end], ctx, sub_id)
        return render_subproof(sub_id, span.option, body_html)

    return _splice_spans(text, spans, render)


# ============================================================================
# FRAGMENTS
# ============================================================================
def render_theorem(env_name, number, title, label, type_count, body_html,
                   entry=None):
    """Theorem box; remark and example boxes start collapsed."""
    box_id = label or f'{env_name}-{type_count}'
    header = f'<strong>{env_name.capitalize()} {number}</strong>'
    if title:
        header += f' ({title})'
    anchor = _anchor_span(label, entry)

    if env_name in COLLAPSIBLE_TYPES:
        if label:
            key = f'collapsible-{label}'
        elif title:
            key = f'collapsible-{env_name}-{slugify(title)}'
        else:
            key = f'collapsible-{env_name}-{type_count}'
        return block(
            f'<div class="theorem-box {env_name}-box collapsible-box collapsed" '
            f'id="{attr(box_id)}" data-collapsible-id="{attr(key)}">\n'
            f'  <div class="theorem-header clickable" onclick="toggleCollapsible(this)">\n'
            f'    <span class="collapsible-icon">&#9660;</span>\n'
            f'    {anchor}{header}\n'
            f'  </div>\n'
            f'  <div class="theorem-content collapsible-content">\n{body_html}\n</div>\n'
            f'</div>')

    return block(
        f'<div class="theorem-box {env_name}-box" id="{attr(box_id)}">\n'
        f'  <div class="theorem-header">{anchor}{header}</div>\n'
        f'  <div class="theorem-content">\n{body_html}\n</div>\n'
        f'</div>')


def _proof_markup(prefix, box_class, toggle, proof_id, title, body_html):
    pid = attr(proof_id)
    return block(
        f'<div class="{box_class} collapsed" data-{prefix}-id="{pid}">\n'
        f'  <div class="{prefix}-header">\n'
        f'    <button class="{prefix}-toggle" onclick="{toggle}(this)" aria-expanded="false">\n'
        f'      <span class="{prefix}-toggle-icon">&#9660;</span>\n'
        f'      <strong>{title or "Proof"}</strong>\n'
        f'    </button>\n'
        f'  </div>\n'
        f'  <div class="{prefix}-content" id="{pid}">\n'
        f'{body_html}\n'
        f'    <span class="proof-end">&#9633;</span>\n'
        f'  </div>\n'
        f'</div>')


def render_proof(stable_id, title, body_html):
    """Collapsible proof box; stable_id keys its saved open/closed state."""
    return _proof_markup('proof', 'proof-box', 'toggleProof',
                         stable_id, title, body_html)


def render_subproof(sub_id, title, body_html):
    return _proof_markup('subproof', 'subproof', 'toggleSubproof',
                         sub_id, title, body_html)


def render_section(level, title, label=None, entry=None):
    tag = f'h{level}'
    id_attr = f' id="{attr(label)}"' if label else ''
    return block(f'<{tag}{id_attr}>{_anchor_span(label, entry)}{title}</{tag}>')


def convert_headings(text, ctx):
    """Sectioning commands inside a fragment body become headings."""
    def unbalanced(m):
        ctx.warn(f"Unbalanced \\{m.group(1)} title, left as-is")

    return _splice_spans(
        text, list(iter_headings(text, unbalanced)),
        lambda h: render_section(h.level, h.title, h.label, ctx.resolve(h.label)))


def render_figure(caption, label, body_html, entry=None):
    id_attr = f' id="{attr(label)}"' if label else ''
    parts = [f'<figure class="latex-figure"{id_attr}>']
    parts.append(f'  {_anchor_span(label, entry)}<div class="figure-content">{body_html}</div>')
    if caption:
        parts.append(f'  <figcaption>{caption}</figcaption>')
    parts.append('</figure>')
    return block('\n'.join(parts))


# ============================================================================
# LISTS
# ============================================================================
_LIST_STYLES = (
    (('(a)', '\\alph'), 'lower-alpha'),
    (('(i)', '\\roman'), 'lower-roman'),
    (('(A)', '\\Alph'), 'upper-alpha'),
    (('(I)', '\\Roman'), 'upper-roman'),
)

_COUNTER_RE = re.compile(
    r'\\(?:setcounter\{enumi+\}\{[^}]*\}|stepcounter\{enumi+\}'
    r'|addtocounter\{enumi+\}\{[^}]*\})')

_INNERMOST_LIST_RE = re.compile(
    r'\\begin\{(itemize|enumerate)\}(?:\[([^\]]*)\])?'
    r'((?:(?!\\begin\{(?:itemize|enumerate)\})'
    r'(?!\\end\{(?:itemize|enumerate)\}).)*?)'
    r'\\end\{\1\}',
    re.DOTALL)


def list_style(option):
    """CSS list-style-type for an enumerate option such as [(a)] or [label=\\roman*]."""
    if not option:
        return None
    for markers, style in _LIST_STYLES:
        if any(marker in option for marker in markers):
            return style
    return None


def render_list(env_name, option, items_html):
    """Wrap converted items in <ul>/<ol> with style and start attributes.

    items_html is the list body whose \\item markers are still present (and
    whose nested lists are already converted).
    """
    start_attr = ''
    style_attr = ''
    tag = 'ul'
    if env_name == 'enumerate':
        tag = 'ol'
        first_item = items_html.find('\\item')
        head = items_html if first_item == -1 else items_html[:first_item]
        counter = re.search(r'\\setcounter\{enumi\}\{(\d+)\}', head)
        if counter:
            start_attr = f' start="{int(counter.group(1)) + 1}"'
        style = list_style(option)
        if style:
            style_attr = f' style="list-style-type: {style};"'

    items = re.split(r'\\item\b', _COUNTER_RE.sub('', items_html))
    html_items = []
    for item in items[1:]:
        item = re.sub(r'^\s*\[[^\]]*\]', '', item).strip()
        html_items.append(f'<li>{tighten(item)}</li>')
    return block(f'<{tag}{style_attr}{start_attr}>\n' + '\n'.join(html_items) + f'\n</{tag}>')


def convert_lists(text, ctx=None):
    """Convert itemize/enumerate inside text to HTML, innermost first."""
    for _ in range(200):
        m = _INNERMOST_LIST_RE.search(text)
        if not m:
            break
        env_name, option, body = m.groups()
        text = text[:m.start()] + render_list(env_name, option, body) + text[m.end():]
    else:
        if ctx is not None:
            ctx.warn("List nesting too deep, inner lists left unconverted")
    return text


# ============================================================================
# FIGURES AND IMAGES
# ============================================================================
IMAGE_EXTENSIONS = ('png', 'jpg', 'jpeg', 'gif', 'svg', 'webp')
RASTER_FALLBACK = 'png'

_PX_PER_UNIT = {'cm': 37.8, 'mm': 3.78, 'in': 96, 'pt': 1.33, 'px': 1}

_INCLUDEGRAPHICS_RE = re.compile(
    r'\\includegraphics\s*(?:\[([^\]]*)\])?\s*\{([^}]*)\}')

_SPACER = '<span style="display: inline-block; width: {};"></span>'


def _num(value):
    return f'{round(value, 2):g}'


def normalize_image_filename(filename, ctx=None):
    """Map a \\includegraphics argument to a web image filename.

    .pdf (and .eps) sources become .png, known web extensions are kept,
    anything else gets .png appended.
    """
    name = filename.strip()
    if not name:
        if ctx is not None:
            ctx.warn("Empty \\includegraphics filename, using missing.png")
        return 'missing.png'
    m = re.search(r'\.([A-Za-z0-9]+)$', name)
    ext = m.group(1).lower() if m else ''
    if ext in ('pdf', 'eps'):
        return name[:m.start()] + '.' + RASTER_FALLBACK
    if ext in IMAGE_EXTENSIONS:
        return name
    return f'{name}.{RASTER_FALLBACK}'


_NUMBER = r'(\d+(?:\.\d*)?|\.\d+)'
_RELATIVE_RE = r'(?:' + _NUMBER + r')?\s*\\{}'
_ABSOLUTE_RE = re.compile(_NUMBER + r'\s*(cm|mm|in|pt|px)')


def _length(value, page_dimensions, relative_unit, ctx, key):
    """One width/height value as CSS, or None (with a warning) if unsupported."""
    for dimension in page_dimensions:
        rel = re.fullmatch(_RELATIVE_RE.format(dimension), value)
        if rel:
            factor = float(rel.group(1)) if rel.group(1) else 1.0
            return f'{_num(factor * 100)}{relative_unit}'
    absolute = _ABSOLUTE_RE.fullmatch(value)
    if absolute:
        return f'{_num(float(absolute.group(1)) * _PX_PER_UNIT[absolute.group(2)])}px'
    if ctx is not None:
        ctx.warn(f"Unsupported image {key}: {value}")
    return None


def image_style(options, ctx=None):
    """CSS sizing for \\includegraphics options ('' when there is none).

    width=0.5\\textwidth -> 50%, width=5cm -> 189px, height=0.3\\textheight
    -> 30vh, scale=0.8 -> width 80%. Unknown keys are ignored.
    """
    if not options:
        return ''
    styles = []
    for part in options.split(','):
        if '=' not in part:
            continue
        key, value = (s.strip() for s in part.split('=', 1))
        if key == 'width':
            css = _length(value, ('textwidth', 'linewidth', 'columnwidth'), '%', ctx, key)
        elif key == 'height':
            css = _length(value, ('textheight',), 'vh', ctx, key)
        elif key == 'scale':
            m = re.fullmatch(_NUMBER, value)
            css = f'{_num(float(value) * 100)}%' if m else None
            if css is None and ctx is not None:
                ctx.warn(f"Unsupported image scale: {value}")
            key = 'width'
        else:
            continue
        if css:
            styles.append(f'{key}: {css};')
    return ' '.join(styles)


def _plain_text(latex):
    """Caption text usable in an attribute: commands, braces and $ dropped."""
    text = re.sub(r'\\[A-Za-z]+\*?(?:\{[^{}]*\})?', '', latex)
    text = re.sub(r'[{}$\\]', '', text)
    return ' '.join(text.split())


def image_tag(filename, options='', ctx=None, alt='Figure'):
    name = normalize_image_filename(filename, ctx)
    base = ctx.image_base if ctx is not None else ''
    if base and not name.startswith('/') and not re.match(r'^[a-z]+:', name, re.I):
        name = posixpath.join(base, name)
    style = image_style(options, ctx)
    style_attr = f' style="{style}"' if style else ''
    return (f'<img src="{attr(name)}" alt="{attr(alt)}" class="latex-image"{style_attr} '
            f'onerror="this.classList.add(\'image-missing\'); '
            f'this.alt=\'Image not found: \' + this.getAttribute(\'src\');">')


def convert_includegraphics(text, ctx=None, alt='Figure'):
    """Convert every \\includegraphics[options]{file} to an <img> tag."""
    return _INCLUDEGRAPHICS_RE.sub(
        lambda m: image_tag(m.group(2), m.group(1) or '', ctx, alt), text)


def _spacer(size):
    m = re.fullmatch(r'\s*([\d.]+)\s*(cm|mm|em|ex|pt|px)\s*', size)
    if m:
        return _SPACER.format(f'{m.group(1)}{m.group(2)}')
    return _SPACER.format('1em')


def _convert_minipages(text):
    out = []
    pos = 0
    for span in iter_environments(text, 'minipage', nested=True):
        width, body_pos = read_brace_group(text, span.body_start)
        if width is None:
            continue
        m = re.fullmatch(r'\s*' + _RELATIVE_RE.format('(?:textwidth|linewidth)') + r'\s*', width)
        if m:
            factor = float(m.group(1)) if m.group(1) else 1.0
            width_css = f'{_num(factor * 100)}%'
        else:
            width_css = width.strip()
        inner = _convert_minipages(text[body_pos:span.body_end])
        inner = re.sub(r'\\centering\b\s*', '', inner)
        out.append(text[pos:span.start])
        out.append(f'<div class="minipage" style="width: {width_css}; '
                   f'display: inline-block; vertical-align: top;">{inner.strip()}</div>')
        pos = span.end
    out.append(text[pos:])
    return ''.join(out)


def process_figure(body, ctx):
    """Caption, label and inner HTML of a figure body."""
    caption = ''
    m = re.search(r'\\caption(?=\s*\{)', body)
    if m:
        group, end = read_brace_group(body, m.end())
        if group is not None:
            caption = group.strip()
            body = body[:m.start()] + body[end:]

    label_m = LABEL_RE.search(body)
    label = label_m.group(1) if label_m else None
    body = LABEL_RE.sub('', body)
    body = re.sub(r'\\centering\b\s*', '', body)

    body = _convert_minipages(body)
    body = re.sub(r'\\hfill\b', _SPACER.format('1em'), body)
    body = re.sub(r'\\hspace\*?\{([^}]*)\}', lambda m: _spacer(m.group(1)), body)
    body = convert_includegraphics(body, ctx, alt=_plain_text(caption) or 'Figure')
    body = convert_center(body)
    body = convert_lists(body, ctx)
    return caption, label, tighten(body)


def process_figures(text, ctx):
    """Convert figure environments found inside a fragment body."""
    spans = list(iter_environments(text, 'figure', nested=True))

    def render(span):
        caption, label, body_html = process_figure(
            text[span.body_start:span.body_end], ctx)
        return render_figure(caption, label, body_html, ctx.resolve(label))

    return _splice_spans(text, spans, render)


# ============================================================================
# LAYOUT
# ============================================================================
def convert_center(text):
    """\\begin{center}...\\end{center} to a centred block."""
    spans = list(iter_environments(text, 'center', nested=True, with_option=False))

    def render(span):
        inner = convert_center(text[span.body_start:span.body_end])
        return block(f'<div style="text-align: center;">{inner}</div>')

    return _splice_spans(text, spans, render)


def convert_layout(text, ctx=None):
    """Spacing and page-layout commands to their HTML equivalents."""
    text = re.sub(r'\\vspace\*?\{[^}]*\}', '<span class="vspace"></span>', text)
    text = re.sub(r'\\medskip\b', '<br>', text)
    text = re.sub(r'\\bigskip\b', '<br><br>', text)
    text = re.sub(r'\\(?:smallskip|newpage|clearpage|cleardoublepage|pagebreak)\b\s*',
                  '', text)
    text = re.sub(r'\\hspace\*?\{[^}]*\}', ' ', text)
    text = re.sub(r'\\(?:hfill|centering|noindent|indent)\b\s*', '', text)
    # Images outside figure environments
    return convert_includegraphics(text, ctx)


# ============================================================================
# ACCENTS
# ============================================================================
ACCENTS = {
    '"': '\u0308', "'": '\u0301', '`': '\u0300', '^': '\u0302',
    '~': '\u0303', '=': '\u0304', '.': '\u0307',
    'u': '\u0306', 'v': '\u030c', 'H': '\u030b', 'c': '\u0327',
    'r': '\u030a', 'k': '\u0328',
}

_BASE = r'(\\[ij](?![A-Za-z])|[A-Za-z])'

_ACCENT_RE = re.compile(
    r'(?<!\\)\\(["\'`^~=.])(?:\{\s*' + _BASE + r'\s*\}|' + _BASE + r')'
    r'|(?<!\\)\\([uvHcrk])(?:\{\s*' + _BASE + r'\s*\}|[ \t]+([A-Za-z]))')


def _compose(accent, base):
    letter = {'\\i': 'i', '\\j': 'j'}.get(base, base)
    composed = unicodedata.normalize('NFC', letter + ACCENTS[accent])
    return composed if len(composed) == 1 else None


def replace_accents(text):
    """Replace LaTeX accent commands by precomposed Unicode characters.

    Both \\"o and \\"{o} forms are handled; a combination without a single
    precomposed character is left untouched. Math and HTML tags are not
    touched.
    """
    text, store = protect_math(text)
    text, tags = protect_tags(text)

    def repl(m):
        accent = m.group(1) or m.group(4)
        base = next(g for g in m.groups()[1:3] + m.groups()[4:6] if g)
        return _compose(accent, base) or m.group(0)

    text = _ACCENT_RE.sub(repl, text)
    return restore_math(restore_tags(text, tags), store)


# ============================================================================
# INLINE FORMATTING
# ============================================================================
_ARG = r'\{((?:[^{}]|\{[^{}]*\})*)\}'

_INLINE_COMMANDS = (
    ('textbf', r'<strong>\1</strong>'),
    ('textit', r'<em>\1</em>'),
    ('emph', r'<em>\1</em>'),
    ('texttt', r'<code>\1</code>'),
    ('textsc', r'\1'),
    ('underline', r'<u>\1</u>'),
)


def format_inline(text):
    """Inline text commands and special characters.

    Math and HTML tags already in the text (with their attribute values)
    are not touched.
    """
    text, store = protect_math(text)
    text, tags = protect_tags(text)

    # Repeat for nested commands
    for _ in range(3):
        for command, replacement in _INLINE_COMMANDS:
            text = re.sub(r'\\' + command + _ARG, replacement, text)

    text = re.sub(r'\\\\(?:\[[^\]]*\])?', '<br>', text)
    text = text.replace('\\&', '&amp;')
    text = text.replace('\\%', '%')
    text = text.replace('\\_', '_')
    text = text.replace('\\#', '#')
    text = text.replace('---', '&mdash;')
    text = text.replace('--', '&ndash;')
    text = text.replace('``', '\u201c')
    text = text.replace("''", '\u201d')
    text = text.replace('\\ldots', '\u2026')
    text = text.replace('\\dots', '\u2026')
    text = text.replace('~', '\u00a0')
    return restore_math(restore_tags(text, tags), store)

#!/usr/bin/env python3
"""
Page assembler.

Fills the bundled page and index templates (data/page.html, data/index.html)
whose __PLACEHOLDER__ markers receive the converted body, the sidebar built
from the chapter metadata, the MathJax macro table, the relative prefix back
to the site root and the live-reload port.

The templates are looked up with importlib.resources so they are found both
from an installed package and from a source checkout.
"""

import html
import json
import os
import re
import sys
from datetime import datetime

from .config import Config


# ---------------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------------

def die(msg: str) -> None:
    """Print error message and exit with code 1."""
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


def template_path(name: str) -> str:
    """Return the path to a bundled template in the data/ directory."""
    try:
        from importlib.resources import files
        return str(files('tex2html_notes').joinpath('data/' + name))
    except (ImportError, TypeError):
        pkg_dir = os.path.dirname(os.path.abspath(__file__))
        return os.path.join(pkg_dir, 'data', name)


def read_template(name: str) -> str:
    """Read a bundled template as UTF-8 text."""
    with open(template_path(name), 'r', encoding='utf-8') as f:
        return f.read()


def escape(text) -> str:
    return html.escape(str(text), quote=True)


# ---------------------------------------------------------------------------
# MathJax macros
# ---------------------------------------------------------------------------

DEFAULT_MATHJAX_MACROS = {
    # Number sets and script letters
    "R": "\\mathbb{R}",
    "C": "\\mathbb{C}",
    "N": "\\mathbb{N}",
    "Z": "\\mathbb{Z}",
    "Q": "\\mathbb{Q}",
    "E": "\\mathbb{E}",
    "F": "\\mathbb{F}",
    "S": "\\mathbb{S}",
    "H": "\\mathcal{H}",
    "L": "\\mathcal{L}",
    "dif": "\\,\\mathrm{d}",
    # Operators
    "supp": "\\operatorname{supp}",
    "proj": "\\operatorname{proj}",
    "Id": "\\operatorname{Id}",
    "Span": "\\operatorname{span}",
    "graph": "\\operatorname{graph}",
    "dist": "\\operatorname{dist}",
    "diam": "\\operatorname{diam}",
    "avg": "\\operatorname{avg}",
    "div": "\\operatorname{div}",
    "vol": "\\operatorname{vol}",
    "ord": "\\operatorname{ord}",
    "esssup": "\\operatorname*{ess\\,sup}",
    "essinf": "\\operatorname*{ess\\,inf}",
    "Lip": "\\operatorname{Lip}",
    # Symbols
    "Chi": "\\mathbf{1}",
    "sub": "\\subseteq",
    "mres": "\\downharpoonright",
    "ddag": "\\ddagger",
    "dag": "\\dagger",
    "llbracket": "\\unicode{x27E6}",
    "rrbracket": "\\unicode{x27E7}",
    # Delimiters and derivatives: [definition, number of arguments]
    "norm": ["\\left\\| #1 \\right\\|", 1],
    "abs": ["\\left| #1 \\right|", 1],
    "set": ["\\left\\{ #1 \\right\\}", 1],
    "inner": ["\\langle #1, #2 \\rangle", 2],
    "floor": ["\\left\\lfloor #1 \\right\\rfloor", 1],
    "ceil": ["\\left\\lceil #1 \\right\\rceil", 1],
    "pd": ["\\frac{\\partial#1}{\\partial#2}", 2],
    "od": ["\\frac{\\mathrm{d}#1}{\\mathrm{d}#2}", 2],
}


def build_mathjax_macros(extra: dict = None) -> str:
    """Serialise the macro table as a JS object literal.

    Keys are macro names without the leading backslash, as MathJax expects.
    Entries from extra override the defaults.
    """
    macros = dict(DEFAULT_MATHJAX_MACROS)
    for key, val in (extra or {}).items():
        macros[key.lstrip('\\')] = val
    text = json.dumps(macros, indent=6, sort_keys=True, ensure_ascii=False)
    # a literal "</" would end the surrounding <script> element
    return text.replace('</', '<\\/')


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def relative_prefix(output_path: str, site_root: str) -> str:
    """Return the '../' prefix leading from an output page to the site root.

    A page directly in the site root gets ''. A page outside the site root
    falls back to a single '../'.
    """
    page_dir = os.path.dirname(os.path.abspath(output_path))
    try:
        rel = os.path.relpath(page_dir, os.path.abspath(site_root))
    except ValueError:
        # different drives on Windows
        return '../'
    if rel == os.curdir:
        return ''
    parts = rel.split(os.sep)
    if parts[0] == os.pardir:
        return '../'
    return '../' * len(parts)


def page_href(chapter: dict, section: dict) -> str:
    """Site-relative URL of a section page."""
    stem = os.path.splitext(section['file'])[0]
    return f"{chapter['folder']}/{stem}.html"


def build_sidebar(chapters: list, prefix: str, current: str = None) -> str:
    """Build the chapter/section navigation of a content page.

    Args:
        chapters: Chapter metadata (Config.chapters).
        prefix: Relative prefix to the site root.
        current: Site-relative URL of the page being built, if any. Its
            chapter group is expanded and its link marked active.
    """
    parts = []
    for chapter in chapters:
        links = []
        expanded = False
        for section in chapter['sections']:
            href = page_href(chapter, section)
            cls = 'section-link'
            if href == current:
                cls += ' active'
                expanded = True
            links.append(f'<a href="{escape(prefix + href)}" class="{cls}">'
                         f'{escape(section["title"])}</a>')

        group_cls = 'chapter-group expanded' if expanded else 'chapter-group'
        parts.append(
            f'<div class="{group_cls}" data-chapter="{escape(chapter["folder"])}">\n'
            f'  <div class="chapter-title" onclick="toggleChapter(this)">'
            f'<span>{escape(chapter["number"])}. {escape(chapter["title"])}</span>'
            f'<span class="toggle">&#9654;</span></div>\n'
            f'  <div class="section-list">\n    '
            + '\n    '.join(links) +
            '\n  </div>\n</div>')
    return '\n'.join(parts)


# ---------------------------------------------------------------------------
# Placeholder replacement
# ---------------------------------------------------------------------------

PLACEHOLDER_RE = re.compile(r'__([A-Z][A-Z0-9_]+)__')


def replace_placeholders(skeleton: str, replacements: dict) -> str:
    """Replace all __PLACEHOLDER__ markers in skeleton with values from replacements.

    Any placeholder found in the skeleton that has no replacement will cause a warning.
    Replacement values are inserted verbatim and never rescanned.
    """
    found = set(PLACEHOLDER_RE.findall(skeleton))
    provided = set(replacements.keys())

    for m in sorted(found - provided):
        print(f"WARNING: Placeholder __{m}__ found in template but no replacement provided",
              file=sys.stderr)
    for u in sorted(provided - found):
        print(f"INFO: Replacement '{u}' provided but no __{u}__ found in template",
              file=sys.stderr)

    def _replacer(match):
        key = match.group(1)
        if key in replacements:
            return replacements[key]
        return match.group(0)  # Leave unchanged if no replacement

    return PLACEHOLDER_RE.sub(_replacer, skeleton)


# ---------------------------------------------------------------------------
# Content page
# ---------------------------------------------------------------------------

def build_page(body: str, title: str, output_path: str, config: Config = None) -> str:
    """Wrap a converted body in the full page template."""
    config = config or Config()
    site_root = config.path('output_dir')
    prefix = relative_prefix(output_path, site_root)

    current = None
    try:
        rel = os.path.relpath(os.path.abspath(output_path), os.path.abspath(site_root))
    except ValueError:
        rel = os.pardir
    if not rel.startswith(os.pardir):
        current = rel.replace(os.sep, '/')

    return replace_placeholders(read_template('page.html'), {
        'TITLE': escape(f"{title} - {config.site_title}"),
        'MATHJAX_MACROS': build_mathjax_macros(config.mathjax_macros),
        'SITE_TITLE': escape(config.site_title),
        'SITE_SUBTITLE': escape(config.site_subtitle),
        'ROOT': prefix,
        'SIDEBAR_HTML': build_sidebar(config.chapters, prefix, current),
        'BODY_HTML': body,
        'RELOAD_PORT': str(config.reload_port),
    })


# ---------------------------------------------------------------------------
# Index page
# ---------------------------------------------------------------------------

def build_path_tabs(learning_paths: dict) -> str:
    tabs = []
    for key, path in learning_paths.items():
        cls = 'filter-tab active' if key == 'all' else 'filter-tab'
        label = escape(path.get('title', key))
        icon = path.get('icon')
        if icon:
            label = f"{escape(icon)} {label}"
        tabs.append(f'    <button class="{cls}" data-filter="{escape(key)}" '
                    f'title="{escape(path.get("description", ""))}">{label}</button>')
    return '\n'.join(tabs)


def build_chapter_card(chapter: dict, sections: list) -> str:
    items = []
    for section in sections:
        tags = ''.join(f'<span class="tag">{escape(t)}</span>' for t in section['tags'])
        items.append(
            f'      <div class="section-item" data-tags="{escape(",".join(section["tags"]))}">'
            f'<a href="{escape(page_href(chapter, section))}" class="section-link">'
            f'<span class="section-order">{escape(section["order"])}</span>'
            f'<span class="section-title">{escape(section["title"])}</span>'
            f'<span class="section-tags">{tags}</span></a></div>')

    return (
        f'    <div class="chapter-card" data-chapter="{escape(chapter["folder"])}">\n'
        f'      <div class="chapter-header" style="border-left-color: {escape(chapter["color"])};" '
        f'onclick="toggleChapter(this)">\n'
        f'        <div class="chapter-title-area">'
        f'<div class="chapter-number">{escape(chapter["number"])}</div>'
        f'<div class="chapter-title">{escape(chapter["title"])}</div></div>\n'
        f'        <span class="chapter-toggle">&#9660;</span>\n'
        f'      </div>\n'
        f'      <div class="chapter-content">\n'
        + '\n'.join(items) +
        '\n      </div>\n    </div>')


def build_index_page(config: Config, available: set = None) -> str:
    """Build the navigation page listing chapters and their sections.

    Only sections whose page exists are listed. available, when given, is the
    set of site-relative URLs to treat as existing; otherwise the output
    directory is checked.
    """
    site_root = config.path('output_dir')
    cards = []
    for chapter in config.chapters:
        sections = []
        for section in sorted(chapter['sections'], key=lambda s: s['order']):
            href = page_href(chapter, section)
            if available is not None:
                exists = href in available
            else:
                exists = os.path.isfile(os.path.join(site_root, *href.split('/')))
            if exists:
                sections.append(section)
        if sections:
            cards.append(build_chapter_card(chapter, sections))

    return replace_placeholders(read_template('index.html'), {
        'SITE_TITLE': escape(config.site_title),
        'SITE_SUBTITLE': escape(config.site_subtitle),
        'PATH_TABS': build_path_tabs(config.learning_paths),
        'CHAPTER_CARDS': '\n'.join(cards),
        'BUILD_TIME': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'RELOAD_PORT': str(config.reload_port),
    })


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

ESSENTIAL_IDS = ['sidebarNav', 'mainContent']


def validate_page(html_text: str) -> tuple:
    """Check an assembled page. Returns (ok, issues)."""
    issues = []
    open_divs = len(re.findall(r'<div[\s>]', html_text))
    close_divs = len(re.findall(r'</div>', html_text))
    if open_divs != close_divs:
        issues.append(f"Div balance MISMATCH: {open_divs} open / {close_divs} close")

    for eid in ESSENTIAL_IDS:
        if f'id="{eid}"' not in html_text:
            issues.append(f"Missing essential element: id=\"{eid}\"")

    return not issues, issues

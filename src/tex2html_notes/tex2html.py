#!/usr/bin/env python3
"""
tex2html.py - LaTeX study-notes page converter

Converts one LaTeX content file into a complete HTML page: theorem boxes,
collapsible proofs, headings, figures and lists are extracted, spliced back
at their exact offsets, cross-references are resolved against the aux file
written by pdflatex, and the result is wrapped in the page template.

Usage:
  python3 -m tex2html_notes.tex2html input.tex build/main.aux output.html

  # Images referenced relative to ../../figures
  python3 -m tex2html_notes.tex2html input.tex build/main.aux output.html ../../figures

The output directory must already exist.
"""

import argparse
import os
import re
import sys

from .assemble import build_page, validate_page
from .auxfile import parse_aux_file
from .config import Config
from .content import convert_center, convert_layout, format_inline, replace_accents
from .environments import ExtractionContext, extract_elements
from .references import anchor_labels, link_references, resolve_math_references
from .splice import splice, wrap_paragraphs


# ============================================================================
# PREPROCESSING
# ============================================================================
def strip_comments(text):
    """Remove LaTeX comments (% to end-of-line, unless escaped)."""
    lines = text.split('\n')
    result = []
    for line in lines:
        cleaned = re.sub(r'(?<!\\)%.*$', '', line)
        result.append(cleaned)
    return '\n'.join(result)


def strip_document(text):
    """Drop the preamble up to \\begin{document} and everything from \\end{document}.

    Content files without a document environment are returned unchanged.
    """
    begin = text.find('\\begin{document}')
    if begin != -1:
        text = text[begin + len('\\begin{document}'):]
    end = text.find('\\end{document}')
    if end != -1:
        text = text[:end]
    return text


# ============================================================================
# CONVERSION
# ============================================================================
def latex_to_html(text, ctx):
    """Convert a LaTeX body to an HTML fragment.

    Args:
        text: LaTeX source, comments and preamble already stripped.
        ctx: ExtractionContext holding the label table and image base.

    Returns:
        (html, element_count)
    """
    elements = extract_elements(text, ctx)
    html = splice(text, elements, ctx)

    html = resolve_math_references(html, ctx.labels, ctx)
    html = link_references(html, ctx.labels, ctx)
    html = anchor_labels(html, ctx.labels)

    html = convert_center(html)
    html = wrap_paragraphs(html)
    html = convert_layout(html, ctx)
    html = replace_accents(html)
    html = format_inline(html)
    return html, len(elements)


class ConversionResult:
    """Outcome of converting one file."""

    def __init__(self, output_path, html, element_count, diagnostics):
        self.output_path = output_path
        self.html = html
        self.element_count = element_count
        self.diagnostics = diagnostics

    @property
    def ok(self):
        return not self.diagnostics

    def __repr__(self):
        return (f"ConversionResult({self.output_path!r}, "
                f"elements={self.element_count}, diagnostics={len(self.diagnostics)})")


def page_title(tex_path, config=None):
    """Section title from the chapter metadata, else the file's stem."""
    stem = os.path.splitext(os.path.basename(tex_path))[0]
    if config is None:
        return stem
    folder = os.path.basename(os.path.dirname(os.path.abspath(tex_path)))
    chapter = config.chapter_for_folder(folder)
    if chapter:
        for section in chapter['sections']:
            if section['file'] == os.path.basename(tex_path):
                return section['title']
    return stem


def convert_file(tex_path, aux_path, output_path, image_base_path='',
                 config=None, verbose=False):
    """Convert tex_path to a standalone HTML page at output_path.

    The label table is read from aux_path on every call. Errors reading the
    source propagate; the output directory must exist.

    Returns:
        ConversionResult with the written HTML and the diagnostics.
    """
    out_dir = os.path.dirname(os.path.abspath(output_path))
    if not os.path.isdir(out_dir):
        raise FileNotFoundError(f"Output directory does not exist: {out_dir}")

    with open(tex_path, 'r', encoding='utf-8') as f:
        text = f.read()

    diagnostics = []
    labels = parse_aux_file(aux_path, diagnostics)
    ctx = ExtractionContext(labels=labels, image_base=image_base_path,
                            verbose=verbose)
    ctx.diagnostics.extend(diagnostics)

    text = strip_document(strip_comments(text))
    body, count = latex_to_html(text, ctx)

    page = build_page(body, page_title(tex_path, config), output_path,
                      config or Config())
    ok, issues = validate_page(page)
    for issue in issues:
        ctx.warn(issue)

    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(page)

    print(f"  Generated {os.path.basename(output_path)} ({count} elements)",
          file=sys.stderr)
    return ConversionResult(output_path, page, count, ctx.diagnostics)


# ============================================================================
# MAIN
# ============================================================================
def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Convert a LaTeX notes file to a standalone HTML page.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s doc.tex build/main.aux output.html
  %(prog)s doc.tex build/main.aux output.html ../images
    (images will be referenced as ../images/filename.png)
""")
    parser.add_argument('tex_path', help='Input .tex file')
    parser.add_argument('aux_path', help='Aux file written by pdflatex')
    parser.add_argument('output_path', help='Output .html file')
    parser.add_argument('image_base', nargs='?', default='',
                        help='Base path prefixed to image filenames')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Trace every extracted and replaced element')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if not os.path.isfile(args.tex_path):
        print(f"ERROR: File not found: {args.tex_path}", file=sys.stderr)
        sys.exit(1)
    try:
        result = convert_file(args.tex_path, args.aux_path, args.output_path,
                              args.image_base, verbose=args.verbose)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    if not result.ok:
        print(f"\nCompleted with {len(result.diagnostics)} warning(s). Please review.",
              file=sys.stderr)
        sys.exit(2)


if __name__ == '__main__':
    main()

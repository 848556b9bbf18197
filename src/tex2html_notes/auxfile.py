#!/usr/bin/env python3
"""
auxfile.py - Label table from a compiled LaTeX aux file

Reads the \\newlabel records that pdflatex writes to main.aux (and to the
per-file aux files pulled in with \\@input) and turns them into a flat
mapping from label name to its displayed number, page, title and anchor.

Record shapes handled:

  \\newlabel{t:1}{{1.2}{3}}
  \\newlabel{t:1}{{1.2}{3}{Fatou's lemma}{theorem.1.2}{}}

Usage:
  python3 -m tex2html_notes.auxfile build/main.aux
"""

import os
import re
import sys


# One or two levels of nested braces, e.g. {\textup {(i)}}
_GROUP = r'((?:[^{}]|\{(?:[^{}]|\{[^{}]*\})*\})*)'

NEWLABEL_RE = re.compile(
    r'\\newlabel\{([^}]+)\}\{\{' + _GROUP + r'\}\{' + _GROUP + r'\}'
    r'(?:\{' + _GROUP + r'\}\{' + _GROUP + r'\})?')

INPUT_RE = re.compile(r'\\@input\{([^}]+)\}')


class LabelEntry:
    """Resolved data for one \\label."""

    __slots__ = ('number', 'page', 'title', 'anchor')

    def __init__(self, number, page='', title='', anchor=''):
        self.number = number
        self.page = page
        self.title = title
        self.anchor = anchor

    def __eq__(self, other):
        if not isinstance(other, LabelEntry):
            return NotImplemented
        return (self.number, self.page, self.title, self.anchor) == (
            other.number, other.page, other.title, other.anchor)

    def __repr__(self):
        return (f"LabelEntry(number={self.number!r}, page={self.page!r}, "
                f"title={self.title!r}, anchor={self.anchor!r})")


def _warn(msg, diagnostics):
    print(f"  WARNING: {msg}", file=sys.stderr)
    if diagnostics is not None:
        diagnostics.append(f"WARNING: {msg}")


def parse_labels(text, labels=None):
    """Add every \\newlabel record in text to labels (last one wins)."""
    if labels is None:
        labels = {}
    for m in NEWLABEL_RE.finditer(text):
        name, number, page, title, anchor = m.groups()
        labels[name] = LabelEntry(
            number=number.strip(),
            page=page.strip(),
            title=title or '',
            anchor=anchor or name,
        )
    return labels


def parse_aux_file(aux_path, diagnostics=None):
    """Parse an aux file and the files it \\@input's (one level deep).

    Args:
        aux_path: Path to the primary aux file, or None.
        diagnostics: Optional list that collects warning messages.

    Returns:
        dict mapping label name -> LabelEntry. Empty if the file is missing.
    """
    if not aux_path or not os.path.isfile(aux_path):
        _warn(f"Aux file not found: {aux_path}", diagnostics)
        return {}

    with open(aux_path, 'r', encoding='utf-8', errors='replace') as f:
        content = f.read()

    labels = parse_labels(content)

    aux_dir = os.path.dirname(aux_path)
    for m in INPUT_RE.finditer(content):
        child_path = os.path.join(aux_dir, m.group(1))
        if not os.path.isfile(child_path):
            _warn(f"Included aux file not found: {child_path}", diagnostics)
            continue
        with open(child_path, 'r', encoding='utf-8', errors='replace') as f:
            parse_labels(f.read(), labels)

    print(f"  Loaded {len(labels)} labels from aux file(s)", file=sys.stderr)
    return labels


def main():
    if len(sys.argv) != 2:
        print("Usage: python3 -m tex2html_notes.auxfile <main.aux>", file=sys.stderr)
        sys.exit(1)
    labels = parse_aux_file(sys.argv[1])
    for name in sorted(labels):
        entry = labels[name]
        print(f"{name}\t{entry.number}\tp.{entry.page}\t#{entry.anchor}")


if __name__ == '__main__':
    main()

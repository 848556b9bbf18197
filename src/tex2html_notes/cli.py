#!/usr/bin/env python3
"""
notes2html - LaTeX study notes to HTML, with incremental builds

Subcommands:
  convert   Convert one .tex file given its aux file (no project config)
  build     Compile main.tex if needed and convert every content file
  file      Convert one content file of the project (fast, no compile)
  chapter   Convert one chapter folder
  watch     Build, then rebuild on every change with browser live reload

The project is described by a JSON config file (default: notes.json in the
current directory, or built-in defaults when it does not exist).
"""

import argparse
import os
import sys

from .assemble import die
from .build import Builder
from .config import Config
from .tex2html import convert_file


DEFAULT_CONFIG = 'notes.json'


def load_config(args):
    """Load the project config named by --config, or the defaults."""
    path = args.config
    if path is None and os.path.isfile(DEFAULT_CONFIG):
        path = DEFAULT_CONFIG
    if path is None:
        cfg = Config()
        cfg.root_dir = os.getcwd()
    else:
        if not os.path.isfile(path):
            die(f"Config file not found: {path}")
        try:
            cfg = Config.from_json(path)
        except ValueError as e:
            die(f"Invalid config {path}: {e}")
        print(f"Loaded config from: {path}", file=sys.stderr)
    cfg.verbose = getattr(args, 'verbose', False)
    return cfg


# ============================================================================
# SUBCOMMANDS
# ============================================================================
def cmd_convert(args):
    if not os.path.isfile(args.tex_path):
        die(f"File not found: {args.tex_path}")
    try:
        result = convert_file(args.tex_path, args.aux_path, args.output_path,
                              args.image_base, verbose=args.verbose)
    except OSError as e:
        die(str(e))
    if not result.ok:
        print(f"\nCompleted with {len(result.diagnostics)} warning(s). Please review.",
              file=sys.stderr)
        sys.exit(2)


def cmd_build(args):
    cfg = load_config(args)
    if not Builder(cfg).build(skip_compile=args.no_compile):
        sys.exit(1)


def cmd_file(args):
    cfg = load_config(args)
    if not os.path.isfile(args.path):
        die(f"File not found: {args.path}")
    if not Builder(cfg).build(target_file=args.path, skip_compile=True):
        sys.exit(1)


def cmd_chapter(args):
    cfg = load_config(args)
    chapter = cfg.find_chapter(args.number)
    if chapter is not None:
        folder = chapter['folder']
    else:
        # folders without metadata: match the number prefix, e.g. 01-*
        prefix = str(args.number).zfill(2)
        src_dir = cfg.path('src_dir')
        names = sorted(os.listdir(src_dir)) if os.path.isdir(src_dir) else []
        matches = [n for n in names
                   if n.startswith(prefix) and os.path.isdir(os.path.join(src_dir, n))]
        if not matches:
            die(f"Chapter {prefix} not found")
        folder = matches[0]
    if not Builder(cfg).build(chapter=folder, skip_compile=args.no_compile):
        sys.exit(1)


def cmd_watch(args):
    from .watch import run_watch

    cfg = load_config(args)
    for path in args.files:
        if not path.endswith('.tex') or not os.path.isfile(path):
            die(f"Not a .tex file: {path}")
    run_watch(cfg, files=args.files, no_compile=args.no_compile,
              open_browser=not args.no_browser)


# ============================================================================
# MAIN
# ============================================================================
def build_parser():
    parser = argparse.ArgumentParser(
        prog='notes2html',
        description='LaTeX study notes → HTML converter with live preview',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One file, no project
  %(prog)s convert doc.tex build/main.aux output.html ../images

  # Build the entire project once
  %(prog)s build --config notes.json

  # Rebuild one file or one chapter without recompiling LaTeX
  %(prog)s file src/05-differentiation-1/BV_on_R.tex
  %(prog)s chapter 5 --no-compile

  # Watch everything, or only some files
  %(prog)s watch
  %(prog)s watch src/05-differentiation-1/*.tex
""")
    sub = parser.add_subparsers(dest='command', metavar='COMMAND')
    sub.required = True

    def project_options(p):
        p.add_argument('--config', '-f', default=None,
                       help=f'Project config JSON (default: {DEFAULT_CONFIG} if present)')
        p.add_argument('--verbose', '-v', action='store_true',
                       help='Trace every extracted and replaced element')

    p = sub.add_parser('convert', help='Convert one .tex file')
    p.add_argument('tex_path', help='Input .tex file')
    p.add_argument('aux_path', help='Aux file written by pdflatex')
    p.add_argument('output_path', help='Output .html file (directory must exist)')
    p.add_argument('image_base', nargs='?', default='',
                   help='Base path prefixed to image filenames')
    p.add_argument('--verbose', '-v', action='store_true',
                   help='Trace every extracted and replaced element')
    p.set_defaults(func=cmd_convert)

    p = sub.add_parser('build', help='Build the entire project')
    project_options(p)
    p.add_argument('--no-compile', action='store_true',
                   help='Do not run LaTeX; use the existing aux file')
    p.set_defaults(func=cmd_build)

    p = sub.add_parser('file', help='Convert one content file (no LaTeX run)')
    p.add_argument('path', help='Content .tex file under the source directory')
    project_options(p)
    p.set_defaults(func=cmd_file)

    p = sub.add_parser('chapter', help='Convert one chapter folder')
    p.add_argument('number', help='Chapter number, e.g. 5 or 05')
    project_options(p)
    p.add_argument('--no-compile', action='store_true',
                   help='Do not run LaTeX; use the existing aux file')
    p.set_defaults(func=cmd_chapter)

    p = sub.add_parser('watch', help='Build and rebuild on change')
    p.add_argument('files', nargs='*',
                   help='Only watch these content files (main/preamble always watched)')
    project_options(p)
    p.add_argument('--no-compile', action='store_true',
                   help='Never run LaTeX, even when main or preamble changes')
    p.add_argument('--no-browser', action='store_true',
                   help='Do not open the pages in a browser')
    p.set_defaults(func=cmd_watch)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == '__main__':
    main()

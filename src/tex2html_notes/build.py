#!/usr/bin/env python3
"""
build.py - Incremental project build

Compiles main.tex with pdflatex only when main.tex or the preamble changed
(or the aux file is missing), then converts the content files under src/ to
pages under html_preview/ and regenerates the navigation index.

Usage:
  from tex2html_notes.build import Builder
  from tex2html_notes.config import Config

  builder = Builder(Config.from_json('notes.json'))
  builder.build()                                  # whole project
  builder.build(chapter='01-measure-theory')       # one chapter folder
  builder.build(target_file='src/01-measure-theory/basics.tex', skip_compile=True)
"""

import hashlib
import os
import subprocess
import sys
import threading
import traceback

from .assemble import build_index_page
from .tex2html import convert_file


# ============================================================================
# LATEX COMPILATION
# ============================================================================
def file_hash(path):
    """md5 hex digest of a file, or None if it does not exist."""
    if not os.path.isfile(path):
        return None
    with open(path, 'rb') as f:
        return hashlib.md5(f.read()).hexdigest()


def compile_main(config):
    """Run the LaTeX compiler on the main file to refresh the aux file.

    Returns:
        The aux path, or None when compilation failed.
    """
    build_dir = config.path('build_dir')
    os.makedirs(build_dir, exist_ok=True)
    cmd = [config.latex_command, f'-output-directory={build_dir}',
           '-interaction=nonstopmode', config.main_file]

    print(f"\nCompiling {config.main_file} with {config.latex_command}...",
          file=sys.stderr)
    for i in range(1, config.latex_passes + 1):
        print(f"  Pass {i}/{config.latex_passes}...", file=sys.stderr)
        try:
            result = subprocess.run(cmd, cwd=config.root_dir, capture_output=True,
                                    encoding='utf-8', errors='replace',
                                    check=True)
        except FileNotFoundError:
            print(f"ERROR: LaTeX compiler not found: {config.latex_command}",
                  file=sys.stderr)
            return None
        except subprocess.CalledProcessError as e:
            print(f"ERROR: LaTeX compilation failed (exit status {e.returncode})",
                  file=sys.stderr)
            error_lines = [line for line in (e.stdout or '').split('\n')
                           if '!' in line or 'Error' in line]
            if error_lines:
                print('  ' + '\n  '.join(error_lines), file=sys.stderr)
            return None
        if result.stderr and 'Warning' not in result.stderr:
            print(f"  LaTeX warnings: {result.stderr[:200]}", file=sys.stderr)

    aux_path = config.aux_path()
    if not os.path.isfile(aux_path):
        print(f"ERROR: Aux file not generated: {aux_path}", file=sys.stderr)
        return None
    print(f"  Compilation successful: {aux_path}", file=sys.stderr)
    return aux_path


# ============================================================================
# SOURCE DISCOVERY
# ============================================================================
def find_tex_files(config, chapter=None):
    """All .tex files under src_dir, optionally only one chapter folder."""
    src_dir = config.path('src_dir')
    root = os.path.join(src_dir, chapter) if chapter else src_dir
    if not os.path.isdir(root):
        return []
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            if name.endswith('.tex'):
                files.append(os.path.join(dirpath, name))
    return files


# ============================================================================
# BUILDER
# ============================================================================
class Builder:
    """Runs builds for one project; at most one build at a time.

    Args:
        config: Config of the project.
        on_complete: Optional callable run after every finished build, used
            to notify live-reload clients.
    """

    def __init__(self, config, on_complete=None):
        self.config = config
        self.on_complete = on_complete
        self._lock = threading.Lock()
        self._main_hash = None
        self._preamble_hash = None
        self.failures = []

    def needs_compile(self):
        return (file_hash(self.config.path('main_file')) != self._main_hash
                or file_hash(self.config.path('preamble_file')) != self._preamble_hash
                or not os.path.isfile(self.config.aux_path()))

    def build(self, target_file=None, chapter=None, skip_compile=False):
        """Build one file, one chapter folder, or the whole project.

        A call made while another build runs is skipped and returns False.

        Returns:
            True if every converted file succeeded.
        """
        if not self._lock.acquire(blocking=False):
            print("Build already in progress, skipping...", file=sys.stderr)
            return False
        try:
            return self._build(target_file, chapter, skip_compile)
        except Exception as e:
            print(f"\nERROR: Build failed: {e}", file=sys.stderr)
            traceback.print_exc()
            return False
        finally:
            self._lock.release()

    def _build(self, target_file, chapter, skip_compile):
        cfg = self.config
        print('\n' + '=' * 60, file=sys.stderr)
        if target_file:
            print(f"Building single file: {os.path.basename(target_file)}", file=sys.stderr)
        elif chapter:
            print(f"Building chapter: {chapter}", file=sys.stderr)
        else:
            print("Building entire project", file=sys.stderr)
        print('=' * 60, file=sys.stderr)

        aux_path = cfg.aux_path()
        if skip_compile:
            print("Skipping LaTeX compilation (fast mode)", file=sys.stderr)
            if not os.path.isfile(aux_path):
                print("WARNING: Aux file missing, references may not work. "
                      "Run a full build once.", file=sys.stderr)
        elif self.needs_compile():
            print("Changes detected in main or preamble file, compiling", file=sys.stderr)
            self._main_hash = file_hash(cfg.path('main_file'))
            self._preamble_hash = file_hash(cfg.path('preamble_file'))
            aux_path = compile_main(cfg)
        else:
            print("No changes to main or preamble file, using cached aux file",
                  file=sys.stderr)

        if target_file:
            files = [os.path.abspath(target_file)]
        else:
            files = find_tex_files(cfg, chapter)
            print(f"\nConverting {len(files)} .tex file(s)...", file=sys.stderr)

        self.failures = []
        for tex_path in files:
            if not self.convert_one(tex_path, aux_path):
                self.failures.append(tex_path)

        if not target_file and not chapter:
            self.generate_index()

        if self.failures:
            print(f"\nBuild finished with {len(self.failures)} failed file(s)",
                  file=sys.stderr)
        else:
            print("\nBuild complete!", file=sys.stderr)
        if not target_file and not chapter:
            index = os.path.join(cfg.path('output_dir'), 'index.html')
            print(f"  View at: file://{index}", file=sys.stderr)

        if self.on_complete is not None:
            self.on_complete()
        return not self.failures

    def convert_one(self, tex_path, aux_path):
        """Convert one source file; returns False (and reports) on failure."""
        cfg = self.config
        output_path = cfg.output_path_for(tex_path)
        rel = os.path.relpath(tex_path, cfg.path('src_dir'))
        print(f"  {rel}", file=sys.stderr)
        try:
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            convert_file(tex_path, aux_path, output_path,
                         cfg.image_base_for(output_path), cfg, cfg.verbose)
        except (OSError, UnicodeDecodeError) as e:
            print(f"ERROR: Conversion of {rel} failed: {e}", file=sys.stderr)
            return False
        return True

    def generate_index(self):
        """Write index.html listing every section with a generated page."""
        out_dir = self.config.path('output_dir')
        os.makedirs(out_dir, exist_ok=True)
        index_path = os.path.join(out_dir, 'index.html')
        with open(index_path, 'w', encoding='utf-8') as f:
            f.write(build_index_page(self.config))
        print("  Generated index.html", file=sys.stderr)
        return index_path

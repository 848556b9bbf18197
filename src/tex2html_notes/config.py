#!/usr/bin/env python3
"""
config.py - Site and build configuration

Holds the paths used by the build (main.tex, src/, build/, html_preview/),
the live-reload settings, the MathJax macro overrides and the static
chapter/section metadata that drives the sidebar and the navigation page.

A JSON config file may override any of the defaults:

  {
    "site_title": "Analysis III",
    "src_dir": "src",
    "chapters": [
      {"folder": "01-measure-theory", "number": 1, "title": "Measure Theory",
       "sections": [{"key": "basics", "title": "Outer Measures",
                     "file": "basics.tex", "order": 1, "tags": ["first-course"]}]}
    ]
  }

Keys starting with "_" are treated as comments and ignored.
"""

import json
import os


DEFAULT_LEARNING_PATHS = {
    'all': {
        'title': 'All Chapters',
        'description': 'Complete course notes',
        'color': '#34495e',
    },
}


class Config:
    """Holds all configuration for a build run."""

    def __init__(self):
        self.root_dir = '.'
        self.main_file = 'main.tex'
        self.preamble_file = 'preamble.tex'
        self.src_dir = 'src'
        self.build_dir = 'build'
        self.output_dir = 'html_preview'
        self.figures_dir = 'figures'
        self.debounce_delay = 0.5  # seconds
        self.reload_port = 35729
        self.latex_command = 'pdflatex'
        self.latex_passes = 2
        self.site_title = 'Study Notes'
        self.site_subtitle = ''
        self.mathjax_macros = {}
        self.chapters = []
        self.learning_paths = dict(DEFAULT_LEARNING_PATHS)
        self.verbose = False

    @classmethod
    def from_json(cls, filepath):
        """Load configuration from a JSON file.

        Relative paths in the file are resolved against the directory that
        contains the config file.
        """
        cfg = cls()
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        cfg.root_dir = os.path.dirname(os.path.abspath(filepath))
        for key, value in data.items():
            if key.startswith('_'):
                continue  # skip _comment keys
            if key == 'debounce_delay':
                value = float(value)
            elif key == 'reload_port':
                value = int(value)
            elif key == 'chapters':
                value = _normalize_chapters(value)
            elif key == 'learning_paths':
                paths = dict(DEFAULT_LEARNING_PATHS)
                paths.update(value)
                value = paths
            if not hasattr(cfg, key):
                raise ValueError(f"Unknown config key: {key}")
            setattr(cfg, key, value)
        return cfg

    def path(self, name):
        """Return the absolute path of a configured file or directory."""
        return os.path.normpath(os.path.join(self.root_dir, getattr(self, name)))

    def aux_path(self):
        """Return the path of the aux file written by the LaTeX compiler."""
        stem = os.path.splitext(os.path.basename(self.main_file))[0]
        return os.path.join(self.path('build_dir'), stem + '.aux')

    def output_path_for(self, tex_path):
        """Map a source .tex path to its .html path, mirroring src/ layout."""
        rel = os.path.relpath(os.path.abspath(tex_path), self.path('src_dir'))
        return os.path.join(self.path('output_dir'),
                            os.path.splitext(rel)[0] + '.html')

    def image_base_for(self, output_path):
        """Relative URL from an output page to the figures directory.

        The figures directory is a sibling of the output directory, so a page
        at html_preview/01-measure/basics.html gets '../../figures'.
        """
        html_dir = os.path.dirname(os.path.abspath(output_path))
        rel = os.path.relpath(self.path('figures_dir'), html_dir)
        return rel.replace(os.sep, '/')

    def chapter_for_folder(self, folder):
        """Return the chapter dict for a source folder name, or None."""
        for chapter in self.chapters:
            if chapter['folder'] == folder:
                return chapter
        return None

    def find_chapter(self, number):
        """Return the chapter dict whose number or folder prefix matches."""
        text = str(number).lstrip('0') or '0'
        for chapter in self.chapters:
            if str(chapter.get('number')) == text:
                return chapter
            if chapter['folder'].split('-', 1)[0].lstrip('0') == text:
                return chapter
        return None


def _normalize_chapters(chapters):
    """Fill defaults in chapter metadata and sort sections by their order."""
    result = []
    for idx, chapter in enumerate(chapters, 1):
        if 'folder' not in chapter:
            raise ValueError(f"Chapter entry {idx} is missing 'folder'")
        sections = []
        for pos, section in enumerate(chapter.get('sections', []), 1):
            if 'file' not in section:
                raise ValueError(
                    f"Section {pos} of chapter {chapter['folder']} is missing 'file'")
            key = section.get('key') or os.path.splitext(section['file'])[0]
            sections.append({
                'key': key,
                'title': section.get('title', key),
                'file': section['file'],
                'order': section.get('order', pos),
                'tags': list(section.get('tags', [])),
            })
        sections.sort(key=lambda s: s['order'])
        result.append({
            'folder': chapter['folder'],
            'number': chapter.get('number', idx),
            'title': chapter.get('title', chapter['folder']),
            'color': chapter.get('color', '#34495e'),
            'sections': sections,
        })
    return result

#!/usr/bin/env python3
"""
Standalone runner for notes2html.

No pip install required (apart from watchdog for watch mode), just run:

  python3 notes2html.py build --config notes.json

This script adds src/ to the Python path and invokes the package CLI.
For pip-installed usage, use the `notes2html` command directly.
"""
import os
import sys

# Add src/ directory to path so tex2html_notes package can be imported
_ROOT = os.path.dirname(os.path.abspath(__file__))
_SRC = os.path.join(_ROOT, 'src')
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from tex2html_notes.cli import main

if __name__ == '__main__':
    main()

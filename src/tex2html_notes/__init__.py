"""tex2html_notes - LaTeX Study Notes to HTML Converter

Converts the LaTeX sources of a set of study notes into a static website:
one styled HTML page per .tex file, with collapsible proofs, cross-references
resolved from the compiled aux file, math rendering (MathJax) and live reload.
"""

__version__ = "1.0.0"

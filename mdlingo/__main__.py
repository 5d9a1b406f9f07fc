"""
Entry point for running mdlingo as a module.

Usage:
    python -m mdlingo --help
    python -m mdlingo translate --input docs/intro.md --lang ja
    python -m mdlingo glossary check docs/intro.ja.md --lang ja
"""
from .cli import app


if __name__ == "__main__":
    app()

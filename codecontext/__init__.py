"""Scan a source tree and render its files and folders as a JSON, XML, TOML or Markdown document."""

__version__ = "1.0.0"

__all__ = ["__version__"]
"""Lint and link-check curated awesome-list READMEs, clean up their dashes and list hacktoberfest repositories."""

__version__ = "0.1.0"
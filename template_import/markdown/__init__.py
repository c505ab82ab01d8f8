"""Markdown front matter parsing and file sources."""

"""Bundled data files (word lists)."""

"""Bundled catalog templates."""

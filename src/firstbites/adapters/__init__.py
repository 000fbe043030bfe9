"""Feeding-log snapshot adapters."""

"""Integration tests for adapter implementations.

These tests exercise adapters against a temporary SQLite file, captured
terminal streams and seeded randomness to validate the translation
between core domain models and the outside world.
"""

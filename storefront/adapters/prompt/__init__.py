"""Confirmation prompt adapters.

- Console (asks on stdin)
- Auto-approve (non-interactive runs)
"""

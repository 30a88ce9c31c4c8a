"""Notification adapters for showing checkout messages to the shopper.

Implementations:
- Stdout (terminal pretty-print)
"""

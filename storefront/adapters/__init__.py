"""External adapters for the Storefront system.

This package contains everything that touches the outside world (SQLite,
the terminal, randomness, the clock) and provides implementations of the
core port interfaces.

Adapter Organization:

- store/: Catalog, account and order persistence (in-memory, SQLite)
- payment/: Simulated payment gateway outcomes and delays
- prompt/: Confirmation prompts shown before a payment is charged
- notification/: Checkout messages for the shopper (stdout)
- cli/: Command handlers for the interactive shell
"""

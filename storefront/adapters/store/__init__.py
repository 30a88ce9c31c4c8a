"""Store adapters for catalog, account and order persistence.

Implementations support multiple backends:
- In-memory (default, all three store ports)
- SQLite (orders and payments, single-file)
"""

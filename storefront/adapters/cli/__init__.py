"""Command-line interface adapters.

Provides the commands behind the interactive shell:
- catalog browsing and cart editing
- signup, login, wishlist and delivery addresses
- checkout and order history
- admin analytics and order status updates
"""

"""Test suite for the Storefront system.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Integration tests for adapter implementations
   - Tests against the in-memory store, a temporary SQLite file and
     captured stdout/stdin
   - Validates adapter behavior and error handling

3. fakes/: Port implementations for testing
   - Scripted payment outcomes, delays, confirmations and notifications
   - Used by core unit tests
"""

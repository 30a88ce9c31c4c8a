"""Payment gateway simulation adapters.

Outcomes are drawn from a seedable random source and processing time is
simulated with asyncio sleeps.
"""

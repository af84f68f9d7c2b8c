"""
AI Provider Router.

Cost-ordered fallback across AI providers with an append-only usage ledger.
"""

__version__ = "0.1.0"

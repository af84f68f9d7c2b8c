"""
Core modules for AI Provider Router.

This package contains pricing, quota tracking, provider fallback routing,
and cost reporting.
"""

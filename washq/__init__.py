"""
WashQ

Multi-tenant car-wash job service with capacity-gated job intake and
per-tenant ticket tokens.
"""

__version__ = "1.0.0"

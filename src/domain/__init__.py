"""
Domain layer for serve evidence notification.

This layer contains:
- Data models (type-safe structures)
- Error types (explicit failure kinds)
- Business logic (composition and delivery pipeline)
"""

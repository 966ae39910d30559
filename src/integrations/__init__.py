"""
Clients for external services: the serve attempt record store and the
email delivery backends.
"""

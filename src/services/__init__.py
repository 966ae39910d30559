"""
Pipeline stages for serve evidence notifications.

This package contains the payload normalizer, attachment resolver, content
augmenter, MIME builder and delivery dispatcher used by the domain layer.
"""

__all__ = ['payload', 'attachment', 'content', 'email', 'retry', 'delivery']

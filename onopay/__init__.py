"""Onopay payment gateway integration: signed requests, bounded retry, verified responses."""

__version__ = "1.0.0"

"""Utility helpers for http-requester."""

from .log_sanitizer import SanitizingFormatter, sanitize_url, setup_logging

__all__ = ["SanitizingFormatter", "sanitize_url", "setup_logging"]

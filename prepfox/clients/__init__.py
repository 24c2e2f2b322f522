"""HTTP clients for external marketplace, shipping and billing APIs."""

from .http_client import RETRYABLE_STATUSES, HttpClient

__all__ = ["HttpClient", "RETRYABLE_STATUSES"]

from __future__ import annotations


class DownloadServiceError(Exception):
    """Base exception for all download-service errors."""


class InvalidPurchaseError(DownloadServiceError, ValueError):
    """A purchase batch that cannot be recorded (e.g., quantity below 1)."""

"""Internal HTTP transport exports for cloudmigr."""

from __future__ import annotations

from .http_transport import HttpResponse, HttpTransport, RetryPolicy

__all__ = ["HttpTransport", "HttpResponse", "RetryPolicy"]

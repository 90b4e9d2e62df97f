"""
Exception hierarchy for elasticlog.
"""

from typing import Optional


class ElasticLogError(Exception):
    """Base class for every error elasticlog reports."""


class TransportError(ElasticLogError):
    """The HTTP request itself failed (connection refused, timeout, ...)."""


class ServerConnectionError(ElasticLogError):
    """The server could not be reached or reported an unusable version."""


class NotInitializedError(ElasticLogError):
    """A record was submitted before ``initialize()`` succeeded."""


class ProvisioningError(ElasticLogError):
    """Checking or creating a destination index failed."""

    def __init__(self, index: str, reason: str):
        super().__init__(f"can't create index {index}: {reason}")
        self.index = index
        self.reason = reason


class TransmissionError(ElasticLogError):
    """A bulk request for one destination failed wholly or partially."""

    def __init__(
        self,
        index: str,
        record_count: int,
        status: Optional[int] = None,
        body: str = "",
    ):
        detail = f"status {status}" if status is not None else "no response"
        message = f"bulk request for {index} ({record_count} records) failed: {detail}"
        if body:
            message = f"{message}\n{body[:500]}"
        super().__init__(message)
        self.index = index
        self.record_count = record_count
        self.status = status
        self.body = body

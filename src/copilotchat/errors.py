"""Exceptions raised by the Copilot chat client.

Every failure of an ask/embed call surfaces as a ``CopilotError`` subclass.
Superseded calls are not errors: they return ``None``.
"""

from __future__ import annotations


class CopilotError(RuntimeError):
    """Base class for all client failures."""


class AuthenticationMissing(CopilotError):
    """No GitHub OAuth token could be found on this machine."""


class AuthenticationRejected(CopilotError):
    """The Copilot token exchange answered with a non-200 status."""

    def __init__(self, status: int | None) -> None:
        super().__init__(f"Failed to authenticate: {status}")
        self.status = status


class TransportFailure(CopilotError):
    """A completion, embedding or model-list call failed at the HTTP level."""

    def __init__(self, status: int | None, body: str = "") -> None:
        message = f"Failed to get response: {status}"
        if body:
            message += f"\n{body}"
        super().__init__(message)
        self.status = status
        self.body = body


class ModelCatalogError(TransportFailure):
    """The model list could not be fetched."""

    def __init__(self, status: int | None, body: str = "") -> None:
        super().__init__(status, body)
        self.args = (f"Failed to fetch models: {status}",)


class StreamParseFailure(CopilotError):
    """A streamed chunk was not valid JSON."""


class StreamProtocolError(CopilotError):
    """The service sent an explicit error payload mid-stream."""


class EmptyResult(CopilotError):
    """The stream closed without any text and without an error."""

    def __init__(self) -> None:
        super().__init__("Failed to get response: empty response")

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Application and request context for telemetry.

ApplicationContext carries the configured application name and is injected
into the message catalog. Request context (correlation id, caller identity)
lives in a ContextVar so concurrent requests never see each other's values.
"""

from __future__ import annotations
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Any, Optional, Protocol

DEFAULT_APPLICATION_NAME = "DefaultApp"
ANONYMOUS_USER = "Anonymous"


class ApplicationContext:
    """
    Holds the application name used to prefix every trace label.

    Configured once at startup. Reconfiguration is allowed; readers see the
    last value written.
    """

    def __init__(self, application_name: Optional[str] = None) -> None:
        self._application_name = application_name or DEFAULT_APPLICATION_NAME

    @property
    def application_name(self) -> str:
        """Get the configured application name."""
        return self._application_name

    def configure(self, application_name: Optional[str]) -> None:
        """Replace the application name.

        :param application_name: New name, falls back to the default when empty
        :type application_name: Optional[str]
        """
        self._application_name = application_name or DEFAULT_APPLICATION_NAME

    def __repr__(self) -> str:
        return f"ApplicationContext(application_name={self._application_name!r})"


@dataclass(frozen=True)
class ContextData:
    """
    Immutable value object containing per-request context fields.
    """

    correlation_id: Optional[str] = None
    user_id: Optional[str] = None

    def with_updates(self, **kwargs: Any) -> "ContextData":
        """
        Create new ContextData with updated fields.
        """
        current = {
            "correlation_id": self.correlation_id,
            "user_id": self.user_id,
        }
        current.update(kwargs)
        return ContextData(**current)

    def to_dict(self) -> dict[str, Optional[str]]:
        """
        Convert to dictionary for logging (non-None values only).
        """
        return {
            k: v
            for k, v in {
                "correlation_id": self.correlation_id,
                "user_id": self.user_id,
            }.items()
            if v is not None
        }


class IContextProvider(Protocol):
    """Protocol for context providers - enables testing and alternative implementations."""

    def get_context(self) -> ContextData:
        """Get current context data."""
        ...

    def set_context(self, data: ContextData) -> Token:
        """Set context data, returning token for restoration."""
        ...

    def reset(self, token: Token) -> None:
        """Reset context to previous state using token."""
        ...


class ContextVarProvider:
    """
    Thread-safe context provider using Python's ContextVar.
    """

    def __init__(self) -> None:
        self._var: ContextVar[ContextData] = ContextVar(
            "request_context",
            default=ContextData(),
        )

    def get_context(self) -> ContextData:
        """Get current context data.

        :returns: Current ContextData
        :rtype: ContextData
        """
        return self._var.get()

    def set_context(self, data: ContextData) -> Token:
        """Set context data, returning token for restoration.

        :param data: ContextData to set
        :type data: ContextData
        :returns: Token for resetting to previous state
        :rtype: Token
        """
        return self._var.set(data)

    def reset(self, token: Token) -> None:
        """Reset context to previous state using token.

        :param token: Token from previous set_context call
        :type token: Token
        """
        self._var.reset(token)


_provider = ContextVarProvider()


class RequestScope:
    """
    Context manager that sets request context for the duration of a block.
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        auto_correlation_id: bool = False,
        provider: Optional[IContextProvider] = None,
    ) -> None:
        """Initialize scope with context values.

        :param correlation_id: Correlation ID to set
        :param user_id: Caller identity to set
        :param auto_correlation_id: Generate correlation_id if not provided
        :param provider: Context provider, the module provider by default
        """
        self._correlation_id = correlation_id
        self._user_id = user_id
        self._auto_correlation_id = auto_correlation_id
        self._provider = provider or _provider
        self._token: Optional[Token] = None

    @property
    def correlation_id(self) -> Optional[str]:
        """Correlation ID active inside the scope."""
        return self._provider.get_context().correlation_id

    def __enter__(self) -> "RequestScope":
        current = self._provider.get_context()
        updates: dict[str, str] = {}

        if self._correlation_id is not None:
            updates["correlation_id"] = self._correlation_id
        elif self._auto_correlation_id:
            updates["correlation_id"] = str(uuid.uuid4())

        if self._user_id is not None:
            updates["user_id"] = self._user_id

        if updates:
            self._token = self._provider.set_context(current.with_updates(**updates))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            self._provider.reset(self._token)
            self._token = None


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return _provider.get_context().correlation_id


def get_user_id() -> Optional[str]:
    """Get current caller identity."""
    return _provider.get_context().user_id


def get_request_context() -> dict[str, Optional[str]]:
    """Get all request context values as a dictionary."""
    return _provider.get_context().to_dict()


def clear_context() -> None:
    """Clear all request context."""
    _provider.set_context(ContextData())

"""
Structured error types for playbook-run dispatch.

Every error raised by fifi extends :class:`FifiError` so that callers (the
routing layer, the dispatcher, the logs) get the same metadata no matter
where the failure originated:

- **Category:** What kind of error (validation, network, config, ...)
- **Code:** Stable machine-readable identifier returned to API clients
- **Status:** HTTP status the routing layer should answer with
- **Context:** Run id, executor id and free-form metadata
- **Cause:** Chained underlying exception for root cause analysis

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │                         FifiError                           │
        │          (category, code, status, context, cause)           │
        ├────────────────────────────────────────────────────────────┤
        │                                                             │
        │  ValidationError          ConnectorError         ConfigError│
        │  (VALIDATION, 400)        (NETWORK, 502)         (CONFIG)   │
        │       │                        │                            │
        │  UnknownExcludeError      ChannelDispatchError              │
        │                                │                            │
        │                           ChannelDispatchWarning            │
        │                                                             │
        └────────────────────────────────────────────────────────────┘

Propagation:
    - ``ValidationError`` / ``UnknownExcludeError`` surface before any side
      effect happens.
    - ``ChannelDispatchError`` surfaces when the canary executor could not be
      reached; no run has been persisted at that point.
    - ``ChannelDispatchWarning`` is never raised to callers. The dispatcher
      builds one to log a tolerated per-executor failure.

Examples:
    >>> error = ValidationError("bad value", code="UNKNOWN_RESPONSEMODE")
    >>> error.to_dict()["code"]
    'UNKNOWN_RESPONSEMODE'

    >>> error = ChannelDispatchError("receptor down").with_context(executor_id="sat-1")
    >>> error.context.executor_id
    'sat-1'

Tags:
    error-handling, exception-hierarchy, fifi, dispatch
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    VALIDATION = "VALIDATION"     # Caller input rejected
    NETWORK = "NETWORK"           # Receptor / inventory / sources unreachable
    CONFIG = "CONFIG"             # Missing or invalid settings
    DATABASE = "DATABASE"         # Run store failures
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        playbook_run_id: Run being created or cancelled
        executor_id: Satellite id of the executor involved
        remediation_id: Remediation being dispatched
        url: Remote URL that was being accessed
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    playbook_run_id: str | None = None
    executor_id: str | None = None
    remediation_id: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["playbook_run_id", "executor_id", "remediation_id", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FifiError(Exception):
    """
    Base exception for all fifi errors.

    Subclasses set ``default_category``, ``default_code`` and
    ``default_status`` so that raising sites only pass a message.

    Examples:
        >>> error = FifiError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.status
        500
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_code: str = "INTERNAL_ERROR"
    default_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        category: ErrorCategory | None = None,
        status: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.category = category or self.default_category
        self.status = status or self.default_status
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FifiError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ChannelDispatchError("Failed").with_context(
                executor_id="722ec903-f4b5-4b1f-9c2f-23fc7b0ba390",
                playbook_run_id=run_id,
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "status": self.status,
        }

        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict

        if self.cause is not None:
            result["cause"] = str(self.cause)

        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(FifiError):
    """
    Caller input was rejected.

    Raised before any dispatch work begins, so nothing needs to be undone.
    """

    default_category = ErrorCategory.VALIDATION
    default_code = "BAD_REQUEST"
    default_status = 400


class UnknownExcludeError(ValidationError):
    """One or more excluded executor ids are not among the known executors."""

    default_code = "UNKNOWN_EXCLUDE"

    def __init__(self, unknown_ids: list[str | None], **kwargs: Any):
        self.unknown_ids = list(unknown_ids)
        ids = ", ".join(str(i) for i in self.unknown_ids)
        super().__init__(
            f"Excluded Executor [{ids}] not found in list of identified executors",
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["unknown_ids"] = self.unknown_ids
        return result


# =============================================================================
# CHANNEL ERRORS
# =============================================================================


class ConnectorError(FifiError):
    """A remote collaborator (inventory, sources, receptor) failed."""

    default_category = ErrorCategory.NETWORK
    default_code = "CONNECTOR_FAILED"
    default_status = 502


class ChannelDispatchError(ConnectorError):
    """The receptor channel rejected a request or could not be reached."""

    default_code = "DISPATCH_FAILED"


class ChannelDispatchWarning(ChannelDispatchError):
    """A tolerated dispatch failure for a non-canary executor.

    Only ever logged; converted into a ``None`` response by the dispatcher.
    """

    default_code = "DISPATCH_FAILED_TOLERATED"


# =============================================================================
# CONFIGURATION / STORAGE ERRORS
# =============================================================================


class ConfigError(FifiError):
    """Configuration value is missing or invalid."""

    default_category = ErrorCategory.CONFIG
    default_code = "INVALID_CONFIG"


class RunStoreError(FifiError):
    """The playbook run could not be persisted."""

    default_category = ErrorCategory.DATABASE
    default_code = "RUN_STORE_FAILED"


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "FifiError",
    "ValidationError",
    "UnknownExcludeError",
    "ConnectorError",
    "ChannelDispatchError",
    "ChannelDispatchWarning",
    "ConfigError",
    "RunStoreError",
]

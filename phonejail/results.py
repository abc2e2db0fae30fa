# phonejail/results.py
"""
Closed per-call outcome types.

Collaborator calls (enforcement, completion) and the operations built on them
return ``Ok(value)`` or ``Err(error)`` instead of raising. Exceptions are kept
for programming errors (unknown ids, illegal transitions) and for creation
flow validation, where the caller wants to stop and re-prompt.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


class CompletionErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    INVALID_RESPONSE = "invalid_response"

    @property
    def retryable(self) -> bool:
        return self in (CompletionErrorKind.RATE_LIMITED, CompletionErrorKind.NETWORK_ERROR)

    @property
    def description(self) -> str:
        return {
            CompletionErrorKind.UNAUTHORIZED: "Unauthorized access to the completion service. Check the API key configuration",
            CompletionErrorKind.RATE_LIMITED: "Rate limit exceeded. Please try again later",
            CompletionErrorKind.NETWORK_ERROR: "Network error occurred",
            CompletionErrorKind.INVALID_RESPONSE: "Received invalid response from the completion service",
        }[self]


class EnforcementErrorKind(str, Enum):
    FAILURE = "enforcement_failure"
    NOT_AUTHORIZED = "not_authorized_for_enforcement"


@dataclass(frozen=True)
class EnforcementError:
    kind: EnforcementErrorKind
    message: str = ""


class ValidationError(Exception):
    """Creation-flow input is incomplete or malformed. Recoverable by re-input."""

    def __init__(self, message: str, *, step: int | None = None):
        super().__init__(message)
        self.step = step


class SchemaNotFoundError(KeyError):
    pass


class SchemaStateError(Exception):
    pass

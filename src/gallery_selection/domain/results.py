"""Result values returned by backend adapters."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class TransportErrorKind(StrEnum):
    """Why a backend call did not produce a usable value."""

    UNCONFIGURED = "unconfigured"
    UNREACHABLE = "unreachable"
    REJECTED = "rejected"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful backend call."""

    value: T


@dataclass(frozen=True)
class TransportError:
    """Failed backend call, returned instead of raised."""

    kind: TransportErrorKind
    message: str


StoreResult = Ok[T] | TransportError

"""
Tagged results returned by every chat and relay service operation.

Services never raise to the caller for expected failures. They return either
``Ok(value)`` or ``Err(kind, message)`` and leave rendering to the caller:

    result = await chat_service.send_message("alice", "bob", "hi")
    if result.ok:
        message = result.value
    else:
        print(result.kind, result.message)
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    NOT_FOUND = "not_found"
    REMOTE_FAILURE = "remote_failure"
    VALIDATION_FAILURE = "validation_failure"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    ok = True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    ok = False

    @classmethod
    def not_authenticated(cls, message: str = "User not authenticated") -> "Err":
        return cls(ErrorKind.NOT_AUTHENTICATED, message)

    @classmethod
    def not_found(cls, message: str) -> "Err":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def remote(cls, exc: BaseException) -> "Err":
        return cls(ErrorKind.REMOTE_FAILURE, str(exc) or exc.__class__.__name__)

    @classmethod
    def invalid(cls, message: str) -> "Err":
        return cls(ErrorKind.VALIDATION_FAILURE, message)


Result = Union[Ok[T], Err]


class ResultError(Exception):
    """Raised by ``unwrap`` when called on an ``Err``."""

    def __init__(self, err: Err):
        self.err = err
        super().__init__(f"{err.kind.value}: {err.message}")


def unwrap(result: "Result[T]") -> T:
    if isinstance(result, Err):
        raise ResultError(result)
    return result.value

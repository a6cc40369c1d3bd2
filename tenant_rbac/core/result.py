"""
Tagged success/failure results.

Repository operations never raise for expected failures. They return either a
``Success`` carrying the data or a ``Failure`` carrying the error, and the
caller branches on ``result.success``.
"""
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union


T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T
    success: bool = True


@dataclass(frozen=True)
class Failure(Generic[E]):
    error: E
    success: bool = False


Result = Union[Success[T], Failure[Exception]]


def success(data: T) -> Success[T]:
    return Success(data)


def failure(error: E) -> Failure[E]:
    return Failure(error)


def is_success(result: "Result[T]") -> bool:
    return result.success is True


def is_failure(result: "Result[T]") -> bool:
    return result.success is False


def unwrap(result: "Result[T]") -> T:
    """Return the data of a Success, raise the error of a Failure."""
    if isinstance(result, Success):
        return result.data
    raise result.error


def map_result(result: "Result[T]", fn: Callable[[T], U]) -> "Result[U]":
    """Apply ``fn`` to the data of a Success, pass a Failure through."""
    if isinstance(result, Success):
        return Success(fn(result.data))
    return result

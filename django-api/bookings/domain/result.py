"""Tagged success/failure results returned by the public engine operations.

Domain code raises ``DomainError`` subclasses; the service boundary converts
them into values so callers handle every outcome explicitly::

    match offer_service.accept_offer(...):
        case Ok(booking):
            ...
        case Err(error):
            ...
"""

import functools
import logging
from dataclasses import dataclass
from typing import Callable, Generic, NoReturn, ParamSpec, TypeVar, Union

from bookings.domain.errors import DomainError, ErrorCode, ErrorKind, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying the domain error."""

    error: DomainError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Union[Ok[T], Err]


def returns_result(func: Callable[P, T]) -> Callable[P, Result[T]]:
    """Wrap ``func`` so domain errors come back as ``Err`` instead of raising.

    Anything that is not a ``DomainError`` is a programming error and keeps
    propagating.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Ok(func(*args, **kwargs))
        except StoreError as exc:
            logger.exception("%s failed in the store: %s", func.__qualname__, exc.message)
            return Err(exc)
        except DomainError as exc:
            logger.info("%s rejected: %s", func.__qualname__, exc)
            return Err(exc)

    return wrapper

"""Result values returned by ledger operations"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from installment_engine.domain.exceptions import DomainException

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the operation's value"""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying a typed domain error"""

    error: DomainException

    @property
    def message(self) -> str:
        return str(self.error)


Result = Union[Ok[T], Err]

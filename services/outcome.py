"""Outcome of a single guarded store interaction.

Every facade operation runs its store calls through ``KeyValueFacade._attempt``,
which never raises for store failures: it returns ``Ok`` or ``StoreFailure``.
The public method then collapses that outcome to its documented neutral value.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: Any) -> T:
        return self.value


@dataclass(frozen=True)
class StoreFailure:
    operation: str
    cause: BaseException

    @property
    def ok(self) -> bool:
        return False

    def unwrap_or(self, default: T) -> T:
        return default


Outcome = Union[Ok[T], StoreFailure]

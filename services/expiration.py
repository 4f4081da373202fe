"""Named TTL policies applied by the bounded-list push operations.

A policy is plain data: adding one means adding an entry to the registry
(either in ``BUILTIN_POLICIES`` or through the ``EXPIRATION_POLICIES`` setting).
"""
from datetime import timedelta
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.config import ExpirationPolicyConfig, Settings


class TimeUnit(str, Enum):
    seconds = "seconds"
    minutes = "minutes"
    hours = "hours"
    days = "days"

    @property
    def factor(self) -> int:
        return _UNIT_SECONDS[self]


_UNIT_SECONDS = {
    TimeUnit.seconds: 1,
    TimeUnit.minutes: 60,
    TimeUnit.hours: 60 * 60,
    TimeUnit.days: 24 * 60 * 60,
}


class UnknownExpirationPolicy(KeyError):
    """Raised when a policy name is not present in the registry."""


class ExpirationPolicy(BaseModel):
    """A semantic name paired with a duration and its time unit."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    duration: int = Field(..., gt=0)
    unit: TimeUnit = TimeUnit.seconds

    @property
    def seconds(self) -> int:
        return self.duration * self.unit.factor

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)


# Unread messages are kept for 30 days.
UNREAD_MESSAGE = ExpirationPolicy(name="unread_message", duration=30, unit=TimeUnit.days)

BUILTIN_POLICIES = (UNREAD_MESSAGE,)


class ExpirationPolicyRegistry(Mapping[str, ExpirationPolicy]):
    """Immutable name -> policy catalog.

    ``with_policies`` returns a new registry; an existing registry never changes.
    """

    def __init__(self, policies: Iterable[ExpirationPolicy] = BUILTIN_POLICIES) -> None:
        self._policies: Mapping[str, ExpirationPolicy] = MappingProxyType({p.name: p for p in policies})

    def __getitem__(self, name: str) -> ExpirationPolicy:
        try:
            return self._policies[name]
        except KeyError:
            raise UnknownExpirationPolicy(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    def names(self) -> list[str]:
        return sorted(self._policies)

    def resolve(self, policy: "ExpirationPolicy | str") -> ExpirationPolicy:
        """Accept either a policy instance or a registered name."""
        if isinstance(policy, ExpirationPolicy):
            return policy
        return self[policy]

    def with_policies(self, *policies: ExpirationPolicy) -> "ExpirationPolicyRegistry":
        merged: Dict[str, ExpirationPolicy] = dict(self._policies)
        for policy in policies:
            merged[policy.name] = policy
        return ExpirationPolicyRegistry(merged.values())

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ExpirationPolicyRegistry":
        registry = cls()
        if settings is None:
            return registry
        extra = [_policy_from_config(name, config) for name, config in settings.expiration_policies.items()]
        return registry.with_policies(*extra)

    def __repr__(self) -> str:
        return f"ExpirationPolicyRegistry({self.names()})"


def _policy_from_config(name: str, config: ExpirationPolicyConfig) -> ExpirationPolicy:
    return ExpirationPolicy(name=name, duration=config.duration, unit=TimeUnit(config.unit))

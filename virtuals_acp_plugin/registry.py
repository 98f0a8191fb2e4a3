import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional, Union

from virtuals_acp_plugin.models import JobTypeConfig

logger = logging.getLogger(__name__)

RegistryUpdate = Mapping[str, Union[JobTypeConfig, Dict[str, Any]]]


def create_default_job_type_registry() -> Dict[str, JobTypeConfig]:
    """Default job types. Extend by merging entries into the registry."""
    return {
        # "default": JobTypeConfig(handler_type=HandlerType.DELEGATE),
    }


def _coerce(name: str, config: Union[JobTypeConfig, Dict[str, Any]]) -> JobTypeConfig:
    if isinstance(config, JobTypeConfig):
        return config
    if not isinstance(config, Mapping):
        raise TypeError(f"Invalid configuration for job type {name!r}: {config!r}")
    return JobTypeConfig.model_validate(dict(config))


class JobTypeRegistry(Mapping):
    """Read-only mapping of job type name to ``JobTypeConfig``.

    The registry never changes after construction; ``merge`` returns a new
    registry in which every key of the update replaces the whole entry.
    """

    def __init__(self, entries: Optional[RegistryUpdate] = None):
        coerced = {
            name: _coerce(name, config) for name, config in (entries or {}).items()
        }
        self._entries = MappingProxyType(coerced)

    @classmethod
    def seed(cls) -> "JobTypeRegistry":
        return cls(create_default_job_type_registry())

    def merge(self, update: Optional[RegistryUpdate]) -> "JobTypeRegistry":
        if not update:
            return self
        merged = dict(self._entries)
        for name, config in update.items():
            merged[name] = _coerce(name, config)
        logger.debug(f"Job type registry merged: {sorted(update.keys())}")
        return JobTypeRegistry(merged)

    def __getitem__(self, name: str) -> JobTypeConfig:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JobTypeRegistry):
            return dict(self._entries) == dict(other._entries)
        if isinstance(other, Mapping):
            return dict(self._entries) == dict(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"JobTypeRegistry({dict(self._entries)!r})"

"""
Validator registry.

Maps validator names to functions, split into a synchronous set (pure,
local checks run inline) and a remote set (network or subprocess checks
deferred to the async phase). A name may appear in both sets: the remote
entry wins during a normal run, the synchronous one is its offline stand-in.
"""

from typing import Iterator

from cfgcheck.validator.builtins import BUILTIN_VALIDATORS
from cfgcheck.validator.types import Validator


class ValidatorRegistry:
    """Name -> validator lookup, built once per run and read-only afterwards."""

    def __init__(self) -> None:
        self._sync: dict[str, Validator] = {}
        self._remote: dict[str, Validator] = {}

    @classmethod
    def with_builtins(cls) -> "ValidatorRegistry":
        """Registry pre-populated with the built-in synchronous validators."""
        registry = cls()
        for name, func in BUILTIN_VALIDATORS.items():
            registry.register(name, func)
        return registry

    def register(self, name: str, func: Validator, remote: bool = False) -> None:
        """
        Register a validator under a unique name.

        Raises:
            ValueError: If the name is already registered in the same set
        """
        target = self._remote if remote else self._sync
        if name in target:
            kind = "remote" if remote else "sync"
            raise ValueError(f"{kind} validator '{name}' is already registered")
        target[name] = func

    def sync_validator(self, name: str) -> Validator | None:
        return self._sync.get(name)

    def remote_validator(self, name: str) -> Validator | None:
        return self._remote.get(name)

    def is_remote(self, name: str) -> bool:
        return name in self._remote

    def __contains__(self, name: str) -> bool:
        return name in self._sync or name in self._remote

    def names(self) -> Iterator[tuple[str, bool, bool]]:
        """Yield (name, has_sync, has_remote) sorted by name."""
        for name in sorted(set(self._sync) | set(self._remote)):
            yield name, name in self._sync, name in self._remote

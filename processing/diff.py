"""
Snapshot differencing.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from processing.registry import RegistryEntity


@dataclass
class Diff:
    """Entities added and removed between two captures."""
    added: list = field(default_factory=list)
    removed: list = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def __repr__(self) -> str:
        return f"<Diff(added={len(self.added)}, removed={len(self.removed)})>"


def _field(entity: Any, name: str) -> str:
    if isinstance(entity, dict):
        return entity.get(name) or ""
    return getattr(entity, name, "") or ""


def _fid(entity: Any) -> str:
    # Plain dicts may carry the registry id as "fid" or "id"
    return _field(entity, "fid") or _field(entity, "id")


def key_function(current: Sequence[Any], previous: Sequence[Any]) -> Callable[[Any], str]:
    """
    Pick one key function for both sides of a diff.

    The registry id is only trusted when every entity on both sides has one;
    otherwise the canonical name is used for all of them.
    """
    if all(_fid(e) for e in current) and all(_fid(e) for e in previous):
        return _fid
    return lambda e: _field(e, "name")


def diff_entities(current: Sequence[RegistryEntity], previous: Sequence[RegistryEntity]) -> Diff:
    """
    Compute added/removed entities between two captures.

    ``added`` follows the order of ``current`` and ``removed`` the order of
    ``previous``. Entities present on both sides under the same key are
    unchanged, whatever their other fields say.
    """
    key = key_function(current, previous)
    previous_keys = {key(e) for e in previous}
    current_keys = {key(e) for e in current}

    return Diff(
        added=[e for e in current if key(e) not in previous_keys],
        removed=[e for e in previous if key(e) not in current_keys],
    )

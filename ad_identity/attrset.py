"""
Case-insensitive containers for attribute names.

LDAP attribute names are case-insensitive (``mail`` and ``Mail`` are the same
attribute). These containers store a case-folded key alongside the name as it
was first supplied, so lookups ignore case while iteration still returns the
original spelling.
"""

from typing import Any, Dict, Iterable, Iterator, Optional, Tuple
from collections.abc import MutableMapping, MutableSet


def fold(name: str) -> str:
    """Return the normalized lookup key for an attribute name."""
    return name.casefold()


class CaseInsensitiveSet(MutableSet):
    """Set of attribute names compared without regard to case."""

    def __init__(self, names: Optional[Iterable[str]] = None):
        self._items: Dict[str, str] = {}
        if names:
            for name in names:
                self.add(name)

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and fold(name) in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def add(self, name: str) -> None:
        # First spelling wins
        self._items.setdefault(fold(name), name)

    def discard(self, name: str) -> None:
        self._items.pop(fold(name), None)

    def remove_if_present(self, name: str) -> bool:
        """Remove ``name`` and report whether it was there."""
        return self._items.pop(fold(name), None) is not None

    def copy(self) -> 'CaseInsensitiveSet':
        return CaseInsensitiveSet(self)

    @classmethod
    def _from_iterable(cls, it):
        return cls(it)

    def __repr__(self) -> str:
        return f"CaseInsensitiveSet({sorted(self._items.values())!r})"


class CaseInsensitiveDict(MutableMapping):
    """Mapping keyed by attribute name, compared without regard to case."""

    def __init__(self, data: Optional[Any] = None, **kwargs):
        self._store: Dict[str, Tuple[str, Any]] = {}
        if data is not None:
            self.update(data)
        if kwargs:
            self.update(kwargs)

    def __setitem__(self, key: str, value: Any) -> None:
        self._store[fold(key)] = (key, value)

    def __getitem__(self, key: str) -> Any:
        return self._store[fold(key)][1]

    def __delitem__(self, key: str) -> None:
        del self._store[fold(key)]

    def __contains__(self, key) -> bool:
        return isinstance(key, str) and fold(key) in self._store

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def copy(self) -> 'CaseInsensitiveDict':
        return CaseInsensitiveDict(self)

    def __repr__(self) -> str:
        return f"CaseInsensitiveDict({dict(self.items())!r})"

"""
Reference and namespace sets.

A reference is either a resolvable filesystem path (kept as a string) or a
module object that is already loaded. The two kinds are registered with the
engine differently, so a ReferenceSet keeps them in separate partitions.
"""
from __future__ import annotations

import os
from types import ModuleType
from typing import Any, FrozenSet, Iterable, Iterator, Union

Reference = Union[str, ModuleType]


def _partition(items: Iterable[Any]) -> tuple[set[str], set[ModuleType]]:
    paths: set[str] = set()
    modules: set[ModuleType] = set()
    for item in items:
        match item:
            case ModuleType():
                modules.add(item)
            case str() | os.PathLike():
                paths.add(os.fspath(item))
            case _:
                raise TypeError(f"not a path or module reference: {item!r}")
    return paths, modules


class ReferenceSet:
    """An immutable set of path and module references."""

    __slots__ = ("_paths", "_modules")

    def __init__(self, paths: Iterable[Any] = (), modules: Iterable[ModuleType] = ()):
        p, m = _partition(paths)
        if m:
            raise TypeError("modules must be passed through the 'modules' argument")
        p2, m2 = _partition(modules)
        if p2:
            raise TypeError("paths must be passed through the 'paths' argument")
        self._paths: FrozenSet[str] = frozenset(p)
        # Modules hash by identity, so two distinct module objects with the same
        # name are two references.
        self._modules: FrozenSet[ModuleType] = frozenset(m2)

    @classmethod
    def of(cls, *references: Any) -> "ReferenceSet":
        """Build a set from a mix of paths and modules."""
        paths, modules = _partition(references)
        return cls(paths, modules)

    @property
    def paths(self) -> FrozenSet[str]:
        return self._paths

    @property
    def modules(self) -> FrozenSet[ModuleType]:
        return self._modules

    def _coerce(self, other: Any) -> "ReferenceSet":
        if isinstance(other, ReferenceSet):
            return other
        if isinstance(other, (str, ModuleType, os.PathLike)):
            return ReferenceSet.of(other)
        return ReferenceSet.of(*other)

    def union(self, other: Any) -> "ReferenceSet":
        other = self._coerce(other)
        if not other:
            return self
        return ReferenceSet(self._paths | other._paths, self._modules | other._modules)

    def difference(self, other: Any) -> "ReferenceSet":
        """Everything in this set that is not in `other` (the 'except' operation)."""
        other = self._coerce(other)
        return ReferenceSet(self._paths - other._paths, self._modules - other._modules)

    __or__ = union
    __sub__ = difference

    def __iter__(self) -> Iterator[Reference]:
        yield from self._paths
        yield from self._modules

    def __len__(self) -> int:
        return len(self._paths) + len(self._modules)

    def __bool__(self) -> bool:
        return bool(self._paths or self._modules)

    def __contains__(self, item: Any) -> bool:
        if isinstance(item, ModuleType):
            return item in self._modules
        if isinstance(item, (str, os.PathLike)):
            return os.fspath(item) in self._paths
        return False

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ReferenceSet):
            return NotImplemented
        return self._paths == other._paths and self._modules == other._modules

    def __hash__(self) -> int:
        return hash((self._paths, self._modules))

    def __repr__(self) -> str:
        names = sorted(self._paths) + sorted(m.__name__ for m in self._modules)
        return f"ReferenceSet({names!r})"


EMPTY_REFERENCES = ReferenceSet()


def namespace_set(names: Iterable[str] | None) -> FrozenSet[str]:
    """Normalize an iterable of namespace names into a frozenset."""
    if names is None:
        return frozenset()
    if isinstance(names, str):
        # A bare string would otherwise be split into characters
        names = (names,)
    out = set()
    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"namespace must be a string, got {name!r}")
        stripped = name.strip()
        if not stripped:
            raise ValueError("namespace must not be blank")
        out.add(stripped)
    return frozenset(out)


__all__ = [
    "Reference",
    "ReferenceSet",
    "EMPTY_REFERENCES",
    "namespace_set",
]

"""
Script packs and the per-session store they share.

A script pack contributes default references, namespace imports and a
context object (reachable from scripts through `require`). The
ScriptPackSession collects those contributions and also owns the state store
the runner keeps its session record in.
"""
from __future__ import annotations

import importlib
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Type, TypeVar

from scripthost.scripthost_references import EMPTY_REFERENCES, ReferenceSet, namespace_set

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C", bound="ScriptPackContext")


class ScriptPackContext:
    """Base class for objects a pack exposes to scripts."""


class ScriptPack(ABC):
    """A contributor of references, namespaces and a context object."""

    @abstractmethod
    def initialize(self, session: "ScriptPackSession") -> None:
        raise NotImplementedError

    @abstractmethod
    def get_context(self) -> Optional[ScriptPackContext]:
        raise NotImplementedError

    def terminate(self) -> None:
        pass


class ScriptPackManager:
    """Look up pack contexts by type."""

    def __init__(self, contexts: Iterable[ScriptPackContext] = ()):
        self._contexts: List[ScriptPackContext] = [c for c in contexts if c is not None]

    def get(self, context_type: Type[C]) -> C:
        for context in self._contexts:
            if isinstance(context, context_type):
                return context
        raise KeyError(context_type.__name__)

    def __iter__(self):
        return iter(self._contexts)

    def __len__(self):
        return len(self._contexts)


class StateKey(Generic[T]):
    """A typed key into a ScriptPackSession's state store."""

    __slots__ = ("name", "type")

    def __init__(self, name: str, type_: Type[T]):
        self.name = name
        self.type = type_

    def __repr__(self):
        return f"StateKey({self.name!r}, {self.type.__name__})"


class ScriptPackSession:
    """Everything shared by the executions of one logical session."""

    def __init__(self, packs: Sequence[ScriptPack] = (), script_args: Sequence[str] = ()):
        self._packs: List[ScriptPack] = list(packs)
        self.script_args = tuple(script_args)
        self.state: Dict[str, Any] = {}
        self._references: ReferenceSet = EMPTY_REFERENCES
        self._namespaces: frozenset = frozenset()
        self._initialized = False

    # --- contributions --------------------------------------------------

    @property
    def references(self) -> ReferenceSet:
        return self._references

    @property
    def namespaces(self) -> frozenset:
        return self._namespaces

    @property
    def contexts(self) -> List[ScriptPackContext]:
        out = []
        for pack in self._packs:
            context = pack.get_context()
            if context is not None:
                out.append(context)
        return out

    def add_reference(self, reference) -> None:
        self._references = self._references.union(reference)

    def import_namespace(self, name: str) -> None:
        self._namespaces = self._namespaces | namespace_set([name])

    # --- lifecycle ------------------------------------------------------

    def initialize_packs(self) -> None:
        if self._initialized:
            return
        for pack in self._packs:
            logger.debug("Initializing script pack %s", type(pack).__name__)
            pack.initialize(self)
        self._initialized = True

    def terminate_packs(self) -> None:
        for pack in self._packs:
            logger.debug("Terminating script pack %s", type(pack).__name__)
            pack.terminate()
        self._initialized = False

    def __enter__(self):
        self.initialize_packs()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.terminate_packs()
        return False

    # --- state store ----------------------------------------------------

    def get_state(self, key: StateKey[T]) -> Optional[T]:
        value = self.state.get(key.name)
        if value is not None and not isinstance(value, key.type):
            raise TypeError(f"state {key.name!r} holds {type(value).__name__}, expected {key.type.__name__}")
        return value

    def set_state(self, key: StateKey[T], value: T) -> None:
        if not isinstance(value, key.type):
            raise TypeError(f"state {key.name!r} expects {key.type.__name__}, got {type(value).__name__}")
        self.state[key.name] = value

    def __contains__(self, key: StateKey) -> bool:
        return key.name in self.state


def load_script_pack(spec: str) -> ScriptPack:
    """Instantiate a pack from a 'package.module:ClassName' string."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"script pack must look like 'module:ClassName', got {spec!r}")
    module = importlib.import_module(module_name)
    cls = getattr(module, attr)
    pack = cls()
    if not isinstance(pack, ScriptPack):
        raise TypeError(f"{spec} is not a ScriptPack")
    return pack


__all__ = [
    "ScriptPackContext",
    "ScriptPack",
    "ScriptPackManager",
    "StateKey",
    "ScriptPackSession",
    "load_script_pack",
]

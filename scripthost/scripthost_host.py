from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple, Type, TypeVar

from scripthost.scripthost_packs import ScriptPackContext, ScriptPackManager

C = TypeVar("C", bound=ScriptPackContext)


def script_api_method(func):
    """A decorator to explicitly mark host methods as callable from scripts."""
    func._is_script_api = True
    return func


@dataclass(frozen=True)
class ScriptEnvironment:
    script_args: Tuple[str, ...] = ()


class ScriptHost:
    """The object a session's first submission runs against.

    Methods marked with @script_api_method, and the attributes named in
    `script_globals`, become globals of the script.
    """

    script_globals: Tuple[str, ...] = ("env",)

    def __init__(self, pack_manager: ScriptPackManager, env: ScriptEnvironment):
        self.pack_manager = pack_manager
        self.env = env

    @script_api_method
    def require(self, context_type: Type[C]) -> C:
        """Return the pack context of the given type."""
        return self.pack_manager.get(context_type)

    def script_api_members(self) -> Dict[str, Any]:
        members: Dict[str, Any] = {}
        for name, member in inspect.getmembers(self):
            if not callable(member):
                continue
            # The decorator marks the function; getmembers hands back bound methods
            func = getattr(member, "__func__", member)
            if getattr(func, "_is_script_api", False):
                members[name] = member
        for name in self.script_globals:
            members[name] = getattr(self, name)
        return members


class ScriptHostFactory:
    """Builds a fresh host for every execution."""

    host_class: Type[ScriptHost] = ScriptHost

    def create_script_host(self, pack_manager: ScriptPackManager, script_args: Sequence[str]) -> ScriptHost:
        return self.host_class(pack_manager, ScriptEnvironment(tuple(script_args or ())))


__all__ = [
    "script_api_method",
    "ScriptEnvironment",
    "ScriptHost",
    "ScriptHostFactory",
]

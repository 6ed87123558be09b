"""
The execution engine.

`PythonScriptEngine.run` compiles a chunk of Python source and executes it
either against a fresh namespace built from a host object (first run) or
against the namespace carried by a previous `ScriptState` (continuation).
Each run returns a new `ScriptState`; the previous one is never mutated, so a
failed run leaves the caller holding the last good state.
"""
from __future__ import annotations

import ast
import builtins
import codeop
import importlib
import importlib.util
import inspect
import linecache
import logging
import os
import sys
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from scripthost.scripthost_outcome import ScriptHostError
from scripthost.scripthost_references import EMPTY_REFERENCES, ReferenceSet, namespace_set

logger = logging.getLogger(__name__)

# Name the trailing expression of a submission is stored under while it runs.
_RESULT_NAME = "__scripthost_result__"

# Path references with these suffixes are import locations, not modules.
_ARCHIVE_SUFFIXES = (".zip", ".whl", ".egg")


# ===================================================================
# 1. Configuration & continuation state
# ===================================================================

@dataclass(frozen=True)
class EngineOptions:
    """An immutable snapshot of everything registered with the engine.

    Every `with_*`/`add_*` call returns a new snapshot with a bumped version.
    References and namespaces only ever grow.
    """
    base_directory: Optional[str] = None
    file_name: Optional[str] = None
    references: ReferenceSet = EMPTY_REFERENCES
    namespaces: FrozenSet[str] = frozenset()
    version: int = 0

    def with_base_directory(self, path) -> "EngineOptions":
        value = os.fspath(path) if path is not None else None
        return replace(self, base_directory=value, version=self.version + 1)

    def with_file_name(self, name: Optional[str]) -> "EngineOptions":
        return replace(self, file_name=name, version=self.version + 1)

    def add_references(self, *references) -> "EngineOptions":
        merged = self.references
        for ref in references:
            merged = merged.union(ref)
        if merged == self.references:
            return self
        return replace(self, references=merged, version=self.version + 1)

    def add_namespaces(self, *names: str) -> "EngineOptions":
        merged = self.namespaces | namespace_set(names)
        if merged == self.namespaces:
            return self
        return replace(self, namespaces=merged, version=self.version + 1)


@dataclass(eq=False)
class ScriptState:
    """The continuation handle returned by a successful run."""
    namespace: Dict[str, Any]
    return_value: Any = None
    submission: int = 1
    # What has actually been applied to `namespace`
    references: ReferenceSet = EMPTY_REFERENCES
    namespaces: FrozenSet[str] = frozenset()
    invalid_references: Tuple[str, ...] = ()
    invalid_namespaces: Tuple[str, ...] = ()

    @property
    def variables(self) -> Dict[str, Any]:
        """Script-visible names, without dunders and engine bookkeeping."""
        return {k: v for k, v in self.namespace.items() if not k.startswith("__")}


# ===================================================================
# 2. Compilation errors
# ===================================================================

@dataclass(frozen=True)
class Diagnostic:
    message: str
    filename: str
    line: Optional[int] = None
    column: Optional[int] = None
    text: Optional[str] = None
    kind: str = "SyntaxError"

    @classmethod
    def from_syntax_error(cls, e: SyntaxError) -> "Diagnostic":
        text = e.text.rstrip("\n") if e.text else None
        return cls(
            message=e.msg or str(e),
            filename=e.filename or "<unknown>",
            line=e.lineno,
            column=e.offset,
            text=text,
            kind=type(e).__name__,
        )

    def __str__(self) -> str:
        loc = self.filename
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        return f"{loc}: {self.kind}: {self.message}"


class CompilationError(ScriptHostError):
    """The submitted source does not compile."""

    def __init__(self, diagnostics: List[Diagnostic], source: Optional[str] = None):
        self.diagnostics = list(diagnostics)
        self.source = source
        super().__init__("; ".join(str(d) for d in self.diagnostics) or "compilation failed")


class IncompleteSubmissionError(CompilationError):
    """The source is a valid prefix that needs more input (e.g. an open block)."""


# ===================================================================
# 3. Engines
# ===================================================================

class ScriptEngine(ABC):
    """Compiles and runs source text, producing a continuation handle."""

    @abstractmethod
    async def run(self, code: str, globals: Any, options: EngineOptions) -> ScriptState:
        raise NotImplementedError


def namespace_from_host(host: Any) -> Dict[str, Any]:
    """Build the initial script globals exposed by a host object."""
    namespace: Dict[str, Any] = {"__name__": "__main__", "__builtins__": builtins}
    if host is None:
        return namespace
    namespace["host"] = host
    members = getattr(host, "script_api_members", None)
    if callable(members):
        namespace.update(members())
    return namespace


def public_members(module: ModuleType) -> Dict[str, Any]:
    """What `from module import *` would bind."""
    names = getattr(module, "__all__", None)
    if names is None:
        names = [n for n in vars(module) if not n.startswith("_")]
    return {n: getattr(module, n) for n in names}


def resolve_reference_path(path: str, base_directory: Optional[str]) -> Path:
    target = Path(path).expanduser()
    if not target.is_absolute():
        target = Path(base_directory or os.getcwd()) / target
    return target


class PythonScriptEngine(ScriptEngine):
    """Runs Python source, with top-level `await` allowed."""

    async def run(self, code: str, globals: Any = None, options: Optional[EngineOptions] = None) -> ScriptState:
        options = options or EngineOptions()
        if isinstance(globals, ScriptState):
            # One live dict per session: functions from earlier submissions
            # keep it as their __globals__
            namespace = globals.namespace
            submission = globals.submission + 1
            applied_refs, applied_ns = globals.references, globals.namespaces
        else:
            namespace = namespace_from_host(globals)
            submission = 1
            applied_refs, applied_ns = EMPTY_REFERENCES, frozenset()

        snapshot = dict(namespace)
        try:
            applied_refs, bad_refs = self._apply_references(namespace, applied_refs, options)
            applied_ns, bad_ns = self._apply_namespaces(namespace, applied_ns, options)

            filename = self.submission_filename(options.file_name, submission)
            compiled = self.compile(code, filename)
            # Let tracebacks show the submitted lines
            linecache.cache[filename] = (len(code), None, code.splitlines(True), filename)

            namespace.pop(_RESULT_NAME, None)
            if compiled.co_flags & inspect.CO_COROUTINE:
                await eval(compiled, namespace)
            else:
                exec(compiled, namespace)
            return_value = namespace.pop(_RESULT_NAME, None)
        except BaseException:
            # A failed submission leaves the globals as they were
            namespace.clear()
            namespace.update(snapshot)
            raise

        return ScriptState(
            namespace=namespace,
            return_value=return_value,
            submission=submission,
            references=applied_refs,
            namespaces=applied_ns,
            invalid_references=tuple(bad_refs),
            invalid_namespaces=tuple(bad_ns),
        )

    # --- compilation ----------------------------------------------------

    @staticmethod
    def submission_filename(file_name: Optional[str], submission: int) -> str:
        """Compile filename for a submission; later ones get a `#n` suffix."""
        if not file_name:
            return f"<submission#{submission}>"
        if submission == 1:
            return file_name
        return f"{file_name}#{submission}"

    def compile(self, code: str, filename: str):
        """Compile `code`, storing a trailing expression's value for `run`."""
        try:
            tree = ast.parse(code, filename, mode="exec")
            body = tree.body
            if body and isinstance(body[-1], ast.Expr):
                last = body[-1]
                store = ast.Assign(
                    targets=[ast.Name(id=_RESULT_NAME, ctx=ast.Store())],
                    value=last.value,
                )
                body[-1] = ast.copy_location(store, last)
                ast.fix_missing_locations(tree)
            return compile(tree, filename, "exec", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT, dont_inherit=True)
        except SyntaxError as e:
            diagnostic = Diagnostic.from_syntax_error(e)
            if self._is_incomplete(code, filename):
                raise IncompleteSubmissionError([diagnostic], source=code) from e
            raise CompilationError([diagnostic], source=code) from e

    @staticmethod
    def _is_incomplete(code: str, filename: str) -> bool:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            try:
                return codeop.compile_command(code, filename, "exec") is None
            except (SyntaxError, ValueError, OverflowError):
                return False

    # --- registration ---------------------------------------------------

    def _apply_references(self, namespace, applied: ReferenceSet, options: EngineOptions):
        pending = options.references.difference(applied)
        invalid: List[str] = []
        for module in sorted(pending.modules, key=lambda m: m.__name__):
            namespace[module.__name__.rpartition(".")[2]] = module
            applied = applied.union(module)
        for path in sorted(pending.paths):
            try:
                self.load_path_reference(path, options.base_directory, namespace)
            except Exception as e:
                logger.warning("Could not load reference %s: %s", path, e)
                invalid.append(path)
                continue
            applied = applied.union(path)
        return applied, invalid

    def _apply_namespaces(self, namespace, applied: FrozenSet[str], options: EngineOptions):
        done = set(applied)
        invalid: List[str] = []
        for name in sorted(options.namespaces - applied):
            try:
                module = importlib.import_module(name)
            except Exception as e:
                logger.warning("Could not import namespace %s: %s", name, e)
                invalid.append(name)
                continue
            namespace.update(public_members(module))
            done.add(name)
        return frozenset(done), invalid

    def load_path_reference(self, path: str, base_directory: Optional[str], namespace: Dict[str, Any]) -> None:
        """Make a path reference available to scripts.

        `.py` files and package directories are loaded and bound under their
        name; other directories and archives are added to `sys.path`.
        """
        target = resolve_reference_path(path, base_directory)
        if target.is_file() and target.suffix == ".py":
            name, location, search = target.stem, target, None
        elif target.is_dir() and (target / "__init__.py").is_file():
            name, location, search = target.name, target / "__init__.py", [str(target)]
        elif target.is_dir() or (target.is_file() and target.suffix in _ARCHIVE_SUFFIXES):
            entry = str(target)
            if entry not in sys.path:
                sys.path.append(entry)
                importlib.invalidate_caches()
            return
        else:
            raise FileNotFoundError(f"no such module, package or directory: {target}")

        existing = sys.modules.get(name)
        if existing is not None and getattr(existing, "__file__", None) == str(location):
            namespace[name] = existing
            return
        spec = importlib.util.spec_from_file_location(name, location, submodule_search_locations=search)
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot load {target}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise
        namespace[name] = module


__all__ = [
    "EngineOptions",
    "ScriptState",
    "Diagnostic",
    "CompilationError",
    "IncompleteSubmissionError",
    "ScriptEngine",
    "PythonScriptEngine",
    "namespace_from_host",
    "public_members",
]

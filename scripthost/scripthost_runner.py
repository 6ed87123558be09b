"""
Incremental script sessions.

`ScriptRunner.execute` runs successive chunks of code as one growing program.
The first call in a pack session bootstraps a session record: it registers
every reference and namespace with the session's engine options and runs the
code against a fresh host object. Later calls only register what is new
since the last call and continue from the engine's previous ScriptState.
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Set

from scripthost.scripthost_engine import (
    CompilationError,
    EngineOptions,
    IncompleteSubmissionError,
    PythonScriptEngine,
    ScriptEngine,
    ScriptState,
)
from scripthost.scripthost_host import ScriptHostFactory
from scripthost.scripthost_outcome import ScriptResult
from scripthost.scripthost_packs import ScriptPackManager, ScriptPackSession, StateKey
from scripthost.scripthost_references import EMPTY_REFERENCES, ReferenceSet, namespace_set

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """The runner's record for one pack session.

    `references`/`namespaces` are the baseline already registered with
    `options`; `script_state` is the continuation handle of the last
    successful run.
    """
    references: Optional[ReferenceSet] = None
    namespaces: Optional[Set[str]] = None
    options: Optional[EngineOptions] = None
    script_state: Optional[ScriptState] = None


SESSION_KEY: StateKey[SessionState] = StateKey("Session", SessionState)


class ScriptRunner:
    """Drives an engine across the executions of a pack session."""

    def __init__(self,
                 host_factory: Optional[ScriptHostFactory] = None,
                 engine: Optional[ScriptEngine] = None,
                 options: Optional[EngineOptions] = None):
        self.host_factory = host_factory or ScriptHostFactory()
        self.engine = engine or PythonScriptEngine()
        # Seed for every new session's options; sessions never share a snapshot
        self.base_options = options or EngineOptions()

    @property
    def base_directory(self) -> Optional[str]:
        return self.base_options.base_directory

    @base_directory.setter
    def base_directory(self, value) -> None:
        self.base_options = self.base_options.with_base_directory(value)

    @property
    def file_name(self) -> Optional[str]:
        return self.base_options.file_name

    @file_name.setter
    def file_name(self, value: Optional[str]) -> None:
        self.base_options = self.base_options.with_file_name(value)

    async def execute(self,
                      code: Optional[str],
                      script_args: Sequence[str],
                      references: ReferenceSet,
                      namespaces: Optional[Iterable[str]],
                      pack_session: ScriptPackSession) -> ScriptResult:
        """Run `code` as the next submission of `pack_session`."""
        if pack_session is None:
            raise ValueError("pack_session must not be None")
        if references is None:
            raise ValueError("references must not be None")
        namespaces = namespace_set(namespaces)

        logger.debug("Starting to create execution components")
        execution_references = ReferenceSet().union(references).union(pack_session.references)
        is_first_execution = SESSION_KEY not in pack_session

        logger.debug("Creating script host")
        host = self.host_factory.create_script_host(ScriptPackManager(pack_session.contexts), script_args or ())

        if is_first_execution:
            return await self._first_execution(code, host, execution_references, namespaces, pack_session)
        return await self._continue_execution(code, host, execution_references, namespaces, pack_session)

    async def _first_execution(self, code, host, execution_references: ReferenceSet,
                               namespaces: frozenset, pack_session: ScriptPackSession) -> ScriptResult:
        logger.debug("Creating session")
        options = self.base_options
        host_module = sys.modules.get(type(host).__module__)
        if host_module is not None:
            options = options.add_references(host_module)

        all_namespaces = namespaces | pack_session.namespaces

        for path in sorted(execution_references.paths):
            logger.debug("Adding reference to %s", path)
            options = options.add_references(path)
        for module in execution_references.modules:
            logger.debug("Adding reference to %s", module.__name__)
            options = options.add_references(module)
        for name in sorted(all_namespaces):
            logger.debug("Importing namespace %s", name)
            options = options.add_namespaces(name)

        session = SessionState(
            references=execution_references,
            namespaces=set(all_namespaces),
            options=options,
        )
        pack_session.set_state(SESSION_KEY, session)

        return await self._run(code or "", host, session)

    async def _continue_execution(self, code, host, execution_references: ReferenceSet,
                                  namespaces: frozenset, pack_session: ScriptPackSession) -> ScriptResult:
        logger.debug("Reusing existing session")
        session = pack_session.get_state(SESSION_KEY)

        # Records written by an older producer may lack these
        if session.references is None:
            session.references = EMPTY_REFERENCES
        if session.namespaces is None:
            session.namespaces = set()
        if session.options is None:
            session.options = (self.base_options
                               .add_references(session.references)
                               .add_namespaces(*session.namespaces))

        new_references = execution_references.difference(session.references)
        for path in sorted(new_references.paths):
            logger.debug("Adding reference to %s", path)
            session.options = session.options.add_references(path)
            session.references = session.references.union(path)
        for module in new_references.modules:
            logger.debug("Adding reference to %s", module.__name__)
            session.options = session.options.add_references(module)
            session.references = session.references.union(module)

        # Pack namespaces were folded in on the first execution
        new_namespaces = namespaces - session.namespaces
        for name in sorted(new_namespaces):
            logger.debug("Importing namespace %s", name)
            session.options = session.options.add_namespaces(name)
            session.namespaces.add(name)

        if code is None or not code.strip():
            return ScriptResult.empty()

        # No run has succeeded yet, so there is nothing to continue from
        globals_ = session.script_state if session.script_state is not None else host
        return await self._run(code, globals_, session)

    async def _run(self, code: str, globals_: Any, session: SessionState) -> ScriptResult:
        try:
            logger.debug("Starting execution")
            state = await self.engine.run(code, globals_, session.options)
            logger.debug("Finished execution")
        except ExceptionGroup as eg:
            # Unwrap a single cause, one level only
            inner = eg.exceptions[0] if len(eg.exceptions) == 1 else eg
            return ScriptResult.execution_failure(inner)
        except IncompleteSubmissionError:
            return ScriptResult.incomplete()
        except CompilationError as e:
            return ScriptResult.compile_error(e)
        except Exception as e:
            return ScriptResult.execution_failure(e)

        session.script_state = state
        return ScriptResult.success(
            state.return_value,
            invalid_references=state.invalid_references,
            invalid_namespaces=state.invalid_namespaces,
        )


__all__ = [
    "SessionState",
    "SESSION_KEY",
    "ScriptRunner",
]

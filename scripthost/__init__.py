from scripthost.scripthost_references import ReferenceSet, namespace_set
from scripthost.scripthost_outcome import ScriptHostError, ScriptResult
from scripthost.scripthost_engine import (
    CompilationError,
    Diagnostic,
    EngineOptions,
    IncompleteSubmissionError,
    PythonScriptEngine,
    ScriptEngine,
    ScriptState,
)
from scripthost.scripthost_packs import (
    ScriptPack,
    ScriptPackContext,
    ScriptPackManager,
    ScriptPackSession,
    StateKey,
)
from scripthost.scripthost_host import ScriptEnvironment, ScriptHost, ScriptHostFactory, script_api_method
from scripthost.scripthost_runner import SESSION_KEY, ScriptRunner, SessionState
from scripthost.scripthost_config import ConfigError, HostConfig, load_config

__all__ = [
    "ReferenceSet",
    "namespace_set",
    "ScriptHostError",
    "ScriptResult",
    "CompilationError",
    "Diagnostic",
    "EngineOptions",
    "IncompleteSubmissionError",
    "PythonScriptEngine",
    "ScriptEngine",
    "ScriptState",
    "ScriptPack",
    "ScriptPackContext",
    "ScriptPackManager",
    "ScriptPackSession",
    "StateKey",
    "ScriptEnvironment",
    "ScriptHost",
    "ScriptHostFactory",
    "script_api_method",
    "SESSION_KEY",
    "ScriptRunner",
    "SessionState",
    "ConfigError",
    "HostConfig",
    "load_config",
]

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Tuple


class ScriptHostError(Exception):
    """Base class for errors raised by scripthost itself."""


Status = Literal['success', 'compile-error', 'error', 'empty']


@dataclass(frozen=True)
class ScriptResult:
    """The outcome of a single `ScriptRunner.execute` call.

    Exactly one of the payload slots matches `status`:
    - 'success'       -> `value` (may be None)
    - 'compile-error' -> `compilation_error`
    - 'error'         -> `execution_error`
    - 'empty'         -> nothing
    """
    status: Status
    value: Any = None
    compilation_error: Optional[Exception] = None
    execution_error: Optional[BaseException] = None
    is_complete_submission: bool = True
    invalid_references: Tuple[str, ...] = field(default_factory=tuple)
    invalid_namespaces: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        match self.status:
            case 'success':
                ok = self.compilation_error is None and self.execution_error is None
            case 'compile-error':
                ok = (self.compilation_error is not None and self.value is None
                      and self.execution_error is None)
            case 'error':
                ok = (self.execution_error is not None and self.value is None
                      and self.compilation_error is None)
            case 'empty':
                ok = (self.value is None and self.compilation_error is None
                      and self.execution_error is None)
            case _:
                raise ValueError(f"unknown status: {self.status!r}")
        if not ok:
            raise ValueError(f"payload does not match status {self.status!r}")
        if self.status != 'empty' and not self.is_complete_submission:
            raise ValueError("only an empty result can mark an incomplete submission")

    # --- constructors ---------------------------------------------------

    @classmethod
    def success(cls, value: Any = None, *, invalid_references=(), invalid_namespaces=()) -> "ScriptResult":
        return cls('success', value=value,
                   invalid_references=tuple(invalid_references),
                   invalid_namespaces=tuple(invalid_namespaces))

    @classmethod
    def compile_error(cls, error: Exception) -> "ScriptResult":
        return cls('compile-error', compilation_error=error)

    @classmethod
    def execution_failure(cls, error: BaseException) -> "ScriptResult":
        return cls('error', execution_error=error)

    @classmethod
    def empty(cls) -> "ScriptResult":
        return _EMPTY

    @classmethod
    def incomplete(cls) -> "ScriptResult":
        return _INCOMPLETE

    # --- queries --------------------------------------------------------

    @property
    def is_success(self) -> bool:
        return self.status == 'success'

    @property
    def is_empty(self) -> bool:
        return self.status == 'empty'

    @property
    def error(self) -> Optional[BaseException]:
        return self.compilation_error or self.execution_error

    def format_error(self) -> str:
        """One-line summary of the failure, or "" when the run did not fail."""
        if self.status == 'compile-error':
            diagnostics = getattr(self.compilation_error, 'diagnostics', None) or ()
            if diagnostics:
                return "\n".join(str(d) for d in diagnostics)
            return str(self.compilation_error)
        if self.status == 'error':
            return "".join(traceback.format_exception_only(self.execution_error)).strip()
        return ""


_EMPTY = ScriptResult('empty')
_INCOMPLETE = ScriptResult('empty', is_complete_submission=False)


__all__ = [
    "ScriptHostError",
    "ScriptResult",
]

"""
A pretty-printer for execution outcomes.
"""
import pprint
import traceback

from scripthost.scripthost_engine import CompilationError, Diagnostic
from scripthost.scripthost_outcome import ScriptResult


class Printer:
    """Formats results, diagnostics and values for a terminal."""

    def __init__(self, width=80, context_radius=2):
        self._width = width
        self._radius = context_radius
        self._handlers = self._create_handlers()

    def pformat(self, obj):
        """Public entry point to format an object."""
        if isinstance(obj, ScriptResult):
            return self._handlers[obj.status](obj)
        return self._pformat_value(obj)

    def _create_handlers(self):
        return {
            'success': self._pformat_success,
            'compile-error': self._pformat_compile_error,
            'error': self._pformat_execution_error,
            'empty': lambda r: "",
        }

    def _pformat_value(self, obj):
        if isinstance(obj, str):
            return repr(obj)
        return pprint.pformat(obj, width=self._width)

    def _pformat_success(self, result):
        lines = []
        if result.invalid_references:
            lines.append("Unresolved references: " + ", ".join(result.invalid_references))
        if result.invalid_namespaces:
            lines.append("Unresolved namespaces: " + ", ".join(result.invalid_namespaces))
        if result.value is not None:
            lines.append(self._pformat_value(result.value))
        return "\n".join(lines)

    def _pformat_compile_error(self, result):
        err = result.compilation_error
        if not isinstance(err, CompilationError):
            return str(err)
        out = []
        for d in err.diagnostics:
            out.append(str(d))
            context = self.source_context(err.source, d) if err.source else ""
            if context:
                out.append(context)
        return "\n".join(out)

    def _pformat_execution_error(self, result):
        exc = result.execution_error
        return "".join(traceback.format_exception(exc)).rstrip()

    def source_context(self, source: str, diagnostic: Diagnostic) -> str:
        """A few numbered lines around the diagnostic with a caret under it."""
        lines = source.splitlines()
        line, col = diagnostic.line, diagnostic.column
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - self._radius)
        end = min(len(lines), line + self._radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            out.append(f"{prefix} {str(i).rjust(width)} | {lines[i - 1]}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)

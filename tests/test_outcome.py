import pytest

from scripthost.scripthost_engine import CompilationError, Diagnostic
from scripthost.scripthost_outcome import ScriptResult


def test_success_carries_value_only():
    res = ScriptResult.success(2)
    assert res.status == "success" and res.is_success
    assert res.value == 2
    assert res.error is None
    assert res.format_error() == ""


def test_compile_error_formats_diagnostics():
    err = CompilationError([Diagnostic("invalid syntax", "<submission#1>", 1, 5, "int x = ")])
    res = ScriptResult.compile_error(err)
    assert res.status == "compile-error"
    assert res.error is err
    assert res.format_error() == "<submission#1>:1:5: SyntaxError: invalid syntax"


def test_execution_error_formats_exception_line():
    res = ScriptResult.execution_failure(ZeroDivisionError("division by zero"))
    assert res.status == "error"
    assert res.format_error() == "ZeroDivisionError: division by zero"


def test_empty_and_incomplete_are_singletons():
    assert ScriptResult.empty() is ScriptResult.empty()
    assert ScriptResult.empty().is_empty
    assert ScriptResult.empty().is_complete_submission
    inc = ScriptResult.incomplete()
    assert inc.is_empty and not inc.is_complete_submission


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(status="success", execution_error=ValueError()),
        dict(status="compile-error"),
        dict(status="compile-error", compilation_error=SyntaxError(), value=1),
        dict(status="error"),
        dict(status="empty", value=1),
        dict(status="success", value=1, is_complete_submission=False),
        dict(status="bogus"),
    ],
)
def test_payload_must_match_status(kwargs):
    with pytest.raises(ValueError):
        ScriptResult(**kwargs)

import json
import math
from pathlib import Path

import pytest

from scripthost.scripthost_references import ReferenceSet, namespace_set


def test_of_partitions_paths_and_modules():
    refs = ReferenceSet.of("lib/a.py", math, Path("lib/b.py"))
    assert refs.paths == {"lib/a.py", "lib/b.py"}
    assert refs.modules == {math}
    assert len(refs) == 3


def test_union_absorbs_duplicates_and_accepts_iterables():
    a = ReferenceSet(["x.py"], [math])
    b = a.union(["x.py", "y.py", json])
    assert b.paths == {"x.py", "y.py"}
    assert b.modules == {math, json}
    # The operands are untouched
    assert a.paths == {"x.py"}
    assert (a | ReferenceSet(["x.py"])) == a


def test_difference_is_by_path_string_and_module_identity():
    a = ReferenceSet(["x.py", "./x.py"], [math, json])
    b = ReferenceSet(["x.py"], [json])
    diff = a.difference(b)
    assert diff.paths == {"./x.py"}
    assert diff.modules == {math}
    assert (a - a) == ReferenceSet()
    assert not (a - a)


def test_iteration_yields_paths_then_modules():
    refs = ReferenceSet(["x.py"], [math])
    items = list(refs)
    assert items == ["x.py", math]
    assert "x.py" in refs and math in refs and json not in refs


def test_rejects_non_references():
    with pytest.raises(TypeError):
        ReferenceSet.of(42)
    with pytest.raises(TypeError):
        ReferenceSet(paths=[math])
    with pytest.raises(TypeError):
        ReferenceSet(modules=["x.py"])


def test_equal_sets_hash_equal():
    assert hash(ReferenceSet(["a"], [math])) == hash(ReferenceSet.of(math, "a"))


def test_namespace_set_normalizes():
    assert namespace_set(None) == frozenset()
    assert namespace_set("os.path") == {"os.path"}
    assert namespace_set(["math", " math ", "json"]) == {"math", "json"}
    with pytest.raises(TypeError):
        namespace_set([1])
    with pytest.raises(ValueError):
        namespace_set(["  "])

import math

import pytest

from scripthost.scripthost_packs import (
    ScriptPack,
    ScriptPackContext,
    ScriptPackManager,
    ScriptPackSession,
    StateKey,
    load_script_pack,
)


class CounterContext(ScriptPackContext):
    def __init__(self):
        self.count = 0


class OtherContext(ScriptPackContext):
    pass


class CounterPack(ScriptPack):
    def __init__(self):
        self.context = CounterContext()
        self.initialized = 0

    def initialize(self, session):
        self.initialized += 1
        session.add_reference(math)
        session.add_reference("lib/counter.py")
        session.import_namespace("collections")

    def get_context(self):
        return self.context


class SilentPack(ScriptPack):
    def initialize(self, session):
        pass

    def get_context(self):
        return None


def test_initialize_collects_contributions_once():
    pack = CounterPack()
    session = ScriptPackSession([pack, SilentPack()], ["x"])
    session.initialize_packs()
    session.initialize_packs()
    assert pack.initialized == 1
    assert session.references.modules == {math}
    assert session.references.paths == {"lib/counter.py"}
    assert session.namespaces == {"collections"}
    assert session.contexts == [pack.context]
    assert session.script_args == ("x",)


def test_manager_finds_contexts_by_type():
    ctx = CounterContext()
    manager = ScriptPackManager([None, ctx])
    assert manager.get(CounterContext) is ctx
    assert manager.get(ScriptPackContext) is ctx
    assert len(manager) == 1
    with pytest.raises(KeyError):
        manager.get(OtherContext)


def test_typed_state_store():
    key = StateKey("Counter", CounterContext)
    session = ScriptPackSession()
    assert key not in session
    assert session.get_state(key) is None
    ctx = CounterContext()
    session.set_state(key, ctx)
    assert key in session
    assert session.get_state(key) is ctx
    assert session.state["Counter"] is ctx
    with pytest.raises(TypeError):
        session.set_state(key, "not a context")
    session.state["Counter"] = 5
    with pytest.raises(TypeError):
        session.get_state(key)


def test_load_script_pack_from_spec():
    pack = load_script_pack(f"{__name__}:CounterPack")
    assert isinstance(pack, CounterPack)
    with pytest.raises(ValueError):
        load_script_pack("no-colon")
    with pytest.raises(TypeError):
        load_script_pack(f"{__name__}:CounterContext")

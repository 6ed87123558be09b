import pytest

from scripthost import ReferenceSet, ScriptPackSession, ScriptRunner
from scripthost.scripthost_host import ScriptEnvironment, ScriptHost, ScriptHostFactory, script_api_method


def assert_ok(res, expected=None):
    assert res.status == "success", f"expected success, got {res}"
    if expected is not None:
        assert res.value == expected, f"expected {expected!r}, got {res.value!r}"


class GameHost(ScriptHost):
    script_globals = ("env", "hp")

    def __init__(self, pack_manager, env):
        super().__init__(pack_manager, env)
        self.hp = 100

    @script_api_method
    def take_damage(self, amount: int):
        self.hp -= int(amount)
        return self.hp

    def not_exposed(self):
        return "hidden"


class GameHostFactory(ScriptHostFactory):
    host_class = GameHost

    def __init__(self):
        self.created = []

    def create_script_host(self, pack_manager, script_args):
        host = super().create_script_host(pack_manager, script_args)
        self.created.append(host)
        return host


def test_only_marked_members_are_exposed():
    host = GameHost(None, ScriptEnvironment(("a",)))
    members = host.script_api_members()
    assert set(members) == {"require", "take_damage", "env", "hp"}
    assert members["hp"] == 100
    assert members["env"].script_args == ("a",)


@pytest.mark.asyncio
async def test_host_methods_are_callable_from_scripts():
    factory = GameHostFactory()
    runner = ScriptRunner(host_factory=factory)
    session = ScriptPackSession()
    res = await runner.execute("take_damage(5)", [], ReferenceSet(), [], session)
    assert_ok(res, 95)
    assert factory.created[0].hp == 95
    res2 = await runner.execute("not_exposed", [], ReferenceSet(), [], session)
    assert res2.status == "error"
    assert isinstance(res2.execution_error, NameError)


@pytest.mark.asyncio
async def test_a_new_host_is_built_per_call_but_the_first_stays_bound():
    factory = GameHostFactory()
    runner = ScriptRunner(host_factory=factory)
    session = ScriptPackSession()
    await runner.execute("take_damage(10)", ["one"], ReferenceSet(), [], session)
    res = await runner.execute("(take_damage(10), env.script_args)", ["two"], ReferenceSet(), [], session)
    assert len(factory.created) == 2
    # Continuations run against the first submission's globals
    assert_ok(res, (80, ("one",)))
    assert factory.created[1].hp == 100
    assert factory.created[1].env.script_args == ("two",)


@pytest.mark.asyncio
async def test_script_bindings_shadow_host_members():
    runner = ScriptRunner(host_factory=GameHostFactory())
    session = ScriptPackSession()
    src = """
def take_damage(amount):
    return -amount
take_damage(3)
"""
    res = await runner.execute(src, [], ReferenceSet(), [], session)
    assert_ok(res, -3)
    res2 = await runner.execute("host.take_damage(3)", [], ReferenceSet(), [], session)
    assert_ok(res2, 97)

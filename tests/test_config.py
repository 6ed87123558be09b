import json
import math

import pytest

from scripthost.scripthost_config import ConfigError, HostConfig, config_from_mapping, load_config
from scripthost.scripthost_runner import ScriptRunner


def test_empty_document_gives_defaults():
    assert config_from_mapping(None) == HostConfig()


def test_load_yaml_file(tmp_path):
    cfg_file = tmp_path / "scripthost.yaml"
    cfg_file.write_text(
        "base_directory: scripts\n"
        "file_name: notebook.py\n"
        "references:\n  - lib/helpers.py\n"
        "modules: [math]\n"
        "namespaces: [json, os.path]\n"
        "log_level: debug\n",
        encoding="utf-8",
    )
    config = load_config(cfg_file)
    assert config.base_directory == str((tmp_path / "scripts").resolve())
    assert config.file_name == "notebook.py"
    assert config.namespaces == ["json", "os.path"]
    assert config.log_level == "debug"
    refs = config.reference_set()
    assert refs.paths == {"lib/helpers.py"}
    assert refs.modules == {math}


def test_base_directory_defaults_to_config_folder(tmp_path):
    cfg_file = tmp_path / "scripthost.yaml"
    cfg_file.write_text("namespaces: [json]\n", encoding="utf-8")
    assert load_config(cfg_file).base_directory == str(tmp_path.resolve())


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "namespaces: json\n",
        "references: [1, 2]\n",
        "base_directory: [a]\n",
        "unknown_key: 1\n",
        "namespaces: [json\n",
    ],
)
def test_invalid_documents_raise_config_error(tmp_path, text):
    cfg_file = tmp_path / "scripthost.yaml"
    cfg_file.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(cfg_file)


def test_missing_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_unimportable_module_reference():
    with pytest.raises(ConfigError):
        HostConfig(modules=["no_such_module_xyz"]).reference_set()


def test_bad_pack_spec():
    with pytest.raises(ConfigError):
        HostConfig(packs=["no_such_module_xyz:Pack"]).create_pack_session()


@pytest.mark.asyncio
async def test_config_builds_a_working_runner(tmp_path):
    config = HostConfig(base_directory=str(tmp_path), file_name="cfg.py", modules=["math"], namespaces=["json"])
    runner = config.create_runner()
    assert isinstance(runner, ScriptRunner)
    assert runner.base_directory == str(tmp_path)
    session = config.create_pack_session(["a"])
    res = await runner.execute("dumps(math.floor(1.9))", ["a"], config.reference_set(), config.namespaces, session)
    assert res.status == "success"
    assert res.value == json.dumps(1)

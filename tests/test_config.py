import json

import pytest

from caascontext.config import Config


@pytest.fixture
def cfg_files(tmp_path):
    """
    Writes the same [deploy] settings as TOML, JSON and YAML.

    Example:
        def test_json(cfg_files):
            assert Config.dump(cfg_files["json"])["deploy"]["cluster-name"] == "caas01"
    """
    toml_path = tmp_path / "caasbase.toml"
    toml_path.write_text('[deploy]\ncluster-name = "caas01"\nVault_Name = "caas01-kv"\n', encoding="utf-8")

    json_path = tmp_path / "caasbase.json"
    json_path.write_text(json.dumps({"deploy": {"cluster-name": "caas01", "Vault_Name": "caas01-kv"}}),
                         encoding="utf-8")

    yaml_path = tmp_path / "caasbase.yaml"
    yaml_path.write_text("deploy:\n  cluster-name: caas01\n  Vault_Name: caas01-kv\n", encoding="utf-8")
    return {"toml": toml_path, "json": json_path, "yaml": yaml_path}


@pytest.mark.parametrize("fmt", ["toml", "json", "yaml"])
def test_default_map_from_every_format(cfg_files, fmt):
    assert Config.default_map(cfg_files[fmt]) == {
        "deploy": {"cluster_name": "caas01", "vault_name": "caas01-kv"}
    }


def test_fetch_missing_default_is_empty(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert Config.fetch() == {}
    assert Config.default_map() == {"deploy": {}}


def test_fetch_missing_required_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.fetch(tmp_path / "absent.toml", required=True)


def test_unsupported_extension(tmp_path):
    path = tmp_path / "settings.ini"
    path.write_text("[deploy]\n", encoding="utf-8")
    with pytest.raises(TypeError, match="Unsupported"):
        Config.dump(path)


def test_parse_failure_is_runtime_error(tmp_path):
    path = tmp_path / "caasbase.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(RuntimeError, match="Failed to parse"):
        Config.dump(path)


def test_non_mapping_document(tmp_path):
    path = tmp_path / "caasbase.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(TypeError, match="not a dict"):
        Config.dump(path)


def test_section_must_be_table():
    with pytest.raises(TypeError):
        Config.section({"deploy": "caas01"})

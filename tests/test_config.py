import json

from bloger.config import DEFAULT_CONFIG, Config


def test_defaults(monkeypatch):
    monkeypatch.delenv("BLOGER_HISTORY__MAX_ENTRIES", raising=False)
    config = Config()
    assert config.get("history.max_entries") == 3
    assert config.get("share.token_budget") == 30000
    assert config.get("missing.key", "fallback") == "fallback"


def test_yaml_file_is_merged(tmp_path):
    path = tmp_path / "bloger.yaml"
    path.write_text("openai:\n  text_model: gpt-test\ngeneration:\n  language: English\n")

    config = Config(str(path))

    assert config.get("openai.text_model") == "gpt-test"
    assert config.get("openai.suggestion_model") == DEFAULT_CONFIG["openai"]["suggestion_model"]
    assert config.get("generation.language") == "English"


def test_json_file_is_merged(tmp_path):
    path = tmp_path / "bloger.json"
    path.write_text(json.dumps({"share": {"base_url": "https://bloger.example/"}}))
    assert Config(str(path)).get("share.base_url") == "https://bloger.example/"


def test_loading_does_not_mutate_defaults(tmp_path):
    path = tmp_path / "bloger.json"
    path.write_text(json.dumps({"history": {"max_entries": 10}}))
    Config(str(path))
    assert DEFAULT_CONFIG["history"]["max_entries"] == 3


def test_unsupported_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "bloger.ini"
    path.write_text("[openai]\n")
    assert Config(str(path)).get("openai.text_model") == DEFAULT_CONFIG["openai"]["text_model"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BLOGER_HISTORY__MAX_ENTRIES", "5")
    monkeypatch.setenv("BLOGER_OPENAI__TEXT_MODEL", "gpt-env")

    config = Config()

    assert config.get("history.max_entries") == 5
    assert config.get("openai.text_model") == "gpt-env"

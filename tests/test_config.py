import pytest
import yaml

from prayer_extractor.core.config import Config, changed_sections, parse_env_line


def test_creates_default_config(tmp_path):
    path = tmp_path / "config.yaml"
    config = Config(config_path=str(path), watch=False)
    assert path.exists()
    assert config.section("providers")["default"] == "gemini"
    assert config.section("bot")["revert_delay"] == 3
    assert config.section("missing") == {}


def test_env_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("BOT_API_URL", "https://bot.example")
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"bot": {"base_url": "${BOT_API_URL}"}, "other": "$BOT_API_URL"}))
    config = Config(config_path=str(path), watch=False)
    assert config.data["bot"]["base_url"] == "https://bot.example"
    assert config.data["other"] == "https://bot.example"


def test_unset_env_reference_is_none(tmp_path, monkeypatch):
    monkeypatch.delenv("BOT_API_URL", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"bot": {"base_url": "${BOT_API_URL}"}}))
    config = Config(config_path=str(path), watch=False)
    assert config.data["bot"]["base_url"] is None


def test_dotenv_file_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("PRAYER_TEST_URL", raising=False)
    (tmp_path / ".env").write_text("# comment\nPRAYER_TEST_URL='http://localhost:3001'\n")
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"bot": {"base_url": "${PRAYER_TEST_URL}"}}))
    config = Config(config_path=str(path), watch=False)
    assert config.data["bot"]["base_url"] == "http://localhost:3001"


def test_reload_notifies_callbacks(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"bot": {"base_url": "http://a"}}))
    config = Config(config_path=str(path), watch=False)
    seen = []
    config.register_change_callback(seen.append)

    path.write_text(yaml.safe_dump({"bot": {"base_url": "http://b"}}))
    config.reload()
    assert seen[-1]["bot"]["base_url"] == "http://b"


def test_invalid_file_keeps_previous(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"bot": {"base_url": "http://a"}}))
    config = Config(config_path=str(path), watch=False)
    path.write_text("- just\n- a list\n")
    config.reload()
    assert config.data["bot"]["base_url"] == "http://a"


@pytest.mark.parametrize("line, expected", [
    ("BOT_API_URL=http://localhost:3001", ("BOT_API_URL", "http://localhost:3001")),
    ('export NAME = "quoted value"', ("NAME", "quoted value")),
    ("EMPTY=", ("EMPTY", "")),
    ("# BOT_API_URL=commented", None),
    ("", None),
    ("not a pair", None),
])
def test_parse_env_line(line, expected):
    assert parse_env_line(line) == expected


def test_changed_sections():
    old = {"bot": {"base_url": "http://a"}, "api": {"enabled": False}}
    new = {"bot": {"base_url": "http://b"}, "api": {"enabled": False}, "export": {}}
    assert changed_sections(old, new) == ["bot", "export"]
    assert changed_sections(old, dict(old)) == []


def test_unchanged_reload_does_not_notify(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"bot": {"base_url": "http://a"}}))
    config = Config(config_path=str(path), watch=False)
    seen = []
    config.register_change_callback(seen.append)
    config.reload()
    assert seen == []

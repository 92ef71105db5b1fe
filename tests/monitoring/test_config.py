from pathlib import Path

import pytest

from filesmon.exceptions import ConfigError
from filesmon.monitoring.config import MonitorConfig

CONFIG = """
slack:
  token: !env TEST_SLACK_TOKEN
  username: Monitor Bot
  suffix_message: " -- settings"
buckets:
  - name: logs-bucket
    access_key_id: AKID
    region: ap-northeast-1
  - name: other-bucket
    access_key_id: AKID2
rules:
  - channel: "#ops"
    time: "0930"
    bucket: logs-bucket
    prefix: logs/{yesterday:YYYY-MM-DD}/
    label: Daily export
  - channel: "#data"
    time: "10"
    bucket: other-bucket
"""


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "filesmon.yaml"
    path.write_text(content)
    return path


def test_from_yaml(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_SLACK_TOKEN", "xoxb-test")

    config = MonitorConfig.from_yaml(write_config(tmp_path, CONFIG))

    assert config.slack.token == "xoxb-test"
    assert config.slack.username == "Monitor Bot"
    assert config.slack.suffix_message == " -- settings"
    assert config.slack.icon_emoji == ":floppy_disk:"
    assert config.buckets["logs-bucket"].region == "ap-northeast-1"
    assert config.buckets["other-bucket"].region == "us-east-1"
    assert [rule.time for rule in config.rules] == ["0930", "10"]
    assert config.rules[0].prefix == "logs/{yesterday:YYYY-MM-DD}/"
    assert config.rules[1].label == ""


def test_missing_token(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_SLACK_TOKEN", raising=False)

    with pytest.raises(ConfigError, match="slack.token"):
        MonitorConfig.from_yaml(write_config(tmp_path, CONFIG))


def test_missing_required_field():
    data = {"slack": {"token": "t"}, "buckets": [{"name": "b"}]}

    with pytest.raises(ConfigError, match="access_key_id"):
        MonitorConfig.from_dict(data)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        MonitorConfig.from_yaml(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError, match="Invalid YAML"):
        MonitorConfig.from_yaml(write_config(tmp_path, "slack: [unclosed"))


def test_not_a_mapping(tmp_path):
    with pytest.raises(ConfigError, match="mapping"):
        MonitorConfig.from_yaml(write_config(tmp_path, "- a\n- b\n"))

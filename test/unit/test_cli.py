from __future__ import annotations

import argparse
import json

import pytest

from fcm_client import cli
from fcm_client.adapters.fcm.errors import ServerError, classify
from fcm_client.config.settings import Settings
from fcm_client.config.validate import ConfigValidationError, ConfigValidationIssue


def _settings() -> Settings:
    return Settings.from_mapping(
        {"fcm": {"project_id": "demo-project"}, "auth": {"access_token": "ya29.secret"}}
    )


def _send_args(**overrides) -> argparse.Namespace:
    values = {
        "token": "device-token",
        "topic": None,
        "condition": None,
        "title": "Hi",
        "body": None,
        "data": ["k=v"],
        "dry_run": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def _no_logging(**_kwargs: object) -> None:
    return None


def test_cmd_classify_prints_json(capsys) -> None:
    rc = cli.cmd_classify(argparse.Namespace(status=500, detail="oops"))
    assert rc == 0
    assert json.loads(capsys.readouterr().out) == {
        "code": "INTERNAL",
        "retryable": False,
        "rendered": "Internal : oops",
    }


def test_main_classify_unknown_status(capsys) -> None:
    assert cli.main(["classify", "418"]) == 0
    parsed = json.loads(capsys.readouterr().out)
    assert parsed["code"] == "UNSPECIFIED_ERROR"
    assert parsed["rendered"] == "UnspecifiedError: "


def test_cmd_dump_config_redacts_token(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "load_settings", _settings)

    rc = cli.cmd_dump_config(argparse.Namespace())
    assert rc == 0
    out = capsys.readouterr().out
    assert "ya29.secret" not in out
    assert json.loads(out)["fcm"]["project_id"] == "demo-project"


def test_cmd_validate_config_reports_issues(monkeypatch, capsys) -> None:
    def _invalid() -> Settings:
        raise ConfigValidationError([ConfigValidationIssue("fcm.project_id", "Field required")])

    monkeypatch.setattr(cli, "load_settings", _invalid)

    rc = cli.cmd_validate_config(argparse.Namespace())
    assert rc == 1
    assert "fcm.project_id" in capsys.readouterr().err


def test_cmd_send_prints_message_name(monkeypatch, capsys) -> None:
    async def _stub_send(settings, message, *, validate_only: bool) -> str:
        assert settings.fcm.project_id == "demo-project"
        assert message.token == "device-token"
        assert message.data == {"k": "v"}
        assert validate_only is True
        return "projects/demo-project/messages/1"

    monkeypatch.setattr(cli, "load_settings", _settings)
    monkeypatch.setattr(cli, "configure_logging", _no_logging)
    monkeypatch.setattr(cli, "_send", _stub_send)

    rc = cli.cmd_send(_send_args(dry_run=True))
    assert rc == 0
    assert capsys.readouterr().out.strip() == "projects/demo-project/messages/1"


def test_cmd_send_renders_client_error(monkeypatch, capsys) -> None:
    async def _stub_send(settings, message, *, validate_only: bool) -> str:
        raise ServerError(classify(404, "Requested entity was not found."))

    monkeypatch.setattr(cli, "load_settings", _settings)
    monkeypatch.setattr(cli, "configure_logging", _no_logging)
    monkeypatch.setattr(cli, "_send", _stub_send)

    rc = cli.cmd_send(_send_args())
    assert rc == 1
    assert (
        "firebase error: Unregistered: Requested entity was not found."
        in capsys.readouterr().err
    )


@pytest.mark.parametrize("data", [["novalue"], ["=v"]])
def test_cmd_send_rejects_malformed_data(monkeypatch, capsys, data) -> None:
    monkeypatch.setattr(cli, "load_settings", _settings)
    monkeypatch.setattr(cli, "configure_logging", _no_logging)

    rc = cli.cmd_send(_send_args(data=data))
    assert rc == 2
    assert "--data expects KEY=VALUE" in capsys.readouterr().err


def test_send_requires_a_target() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["send", "--title", "Hi"])

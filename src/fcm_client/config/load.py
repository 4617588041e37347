from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from fcm_client.config.settings import Settings
from fcm_client.config.validate import (
    ConfigValidationError,
    ConfigValidationIssue,
    issues_from_pydantic_error,
    validate_settings,
)

CONFIG_PATH_ENV = "FCM_CONFIG_PATH"

# Missing credentials are reported on the field the operator has to set, with the
# env variable that sets it.
_MISSING_FIELD_HINTS: dict[str, tuple[str, str]] = {
    "fcm": ("fcm.project_id", "Set `FCM_PROJECT_ID` (or YAML `fcm.project_id`)."),
    "auth": (
        "auth.access_token",
        "Set `FCM_ACCESS_TOKEN` (or YAML `auth.access_token`), "
        "or use `FCM_AUTH_MODE=metadata` on Google Cloud.",
    ),
}


def load_settings(*, config_path: str | Path | None = None) -> Settings:
    """
    Build `Settings` from `.env`, an optional YAML file and the environment.

    The YAML file is `config_path`, else `$FCM_CONFIG_PATH`; a named file that does
    not exist is an error. Environment variables win over YAML values.
    """
    dotenv_path = Path(".env")
    if dotenv_path.is_file():
        load_dotenv(dotenv_path=dotenv_path, override=False)

    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV) or None
    yaml_data = _read_yaml(Path(config_path)) if config_path is not None else {}

    try:
        settings = Settings(**yaml_data)
    except ValidationError as exc:
        raise ConfigValidationError(
            [_explain_missing(issue) for issue in issues_from_pydantic_error(exc)]
        ) from exc

    validate_settings(settings)
    return settings


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigValidationError(
            [ConfigValidationIssue(path=CONFIG_PATH_ENV, message=f"Config file not found: {path}")]
        )
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message=f"Unable to read config file: {exc}")]
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message=f"Invalid YAML: {exc}")]
        ) from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message="YAML root must be a mapping/object")]
        )
    return raw


def _explain_missing(issue: ConfigValidationIssue) -> ConfigValidationIssue:
    """Point a missing `fcm` section or static-mode token at the field to set."""
    target = _MISSING_FIELD_HINTS.get(issue.path.split(".", 1)[0])
    if target is None:
        return issue

    field, hint = target
    missing = (
        issue.message.startswith("Field required") or "access_token is not set" in issue.message
    )
    if issue.path not in {field, field.split(".", 1)[0]} or not missing:
        return issue
    return ConfigValidationIssue(field, f"Field required. {hint}")

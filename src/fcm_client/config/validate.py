from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import ValidationError

from fcm_client.config.settings import Settings

_ALLOWED_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


@dataclass(frozen=True)
class ConfigValidationIssue:
    path: str
    message: str


class ConfigValidationError(ValueError):
    def __init__(self, issues: Iterable[ConfigValidationIssue]):
        self.issues = list(issues)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = ["Configuration is invalid:"]
        for issue in self.issues:
            lines.append(f"- {issue.path}: {issue.message}")
        return "\n".join(lines)


def issues_from_pydantic_error(error: ValidationError) -> list[ConfigValidationIssue]:
    issues: list[ConfigValidationIssue] = []
    for item in error.errors(include_url=False):
        loc = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        msg = item.get("msg", "Invalid value")
        issues.append(ConfigValidationIssue(path=loc, message=msg))
    return issues


def validate_settings(settings: Settings) -> None:
    issues: list[ConfigValidationIssue] = []

    log_level = settings.observability.log_level.upper()
    if log_level not in _ALLOWED_LOG_LEVELS:
        issues.append(
            ConfigValidationIssue(
                path="observability.log_level",
                message=(
                    f"Unsupported log level {settings.observability.log_level!r} "
                    f"(allowed: {sorted(_ALLOWED_LOG_LEVELS)})"
                ),
            )
        )

    transport = settings.hardening.transport
    if (
        str(settings.fcm.base_url).lower().startswith("http://")
        and not transport.allow_insecure_http
    ):
        issues.append(
            ConfigValidationIssue(
                path="fcm.base_url",
                message=(
                    "Plain HTTP endpoint is not allowed by default. "
                    "Use https:// or set hardening.transport.allow_insecure_http=true."
                ),
            )
        )

    if not settings.fcm.verify_tls and not transport.allow_insecure_tls:
        issues.append(
            ConfigValidationIssue(
                path="fcm.verify_tls",
                message=(
                    "Disabling TLS verification is not allowed by default. "
                    "Set hardening.transport.allow_insecure_tls=true to override (not recommended)."
                ),
            )
        )

    ca_bundle = settings.fcm.ca_bundle_path
    if ca_bundle is not None and not ca_bundle.is_file():
        issues.append(
            ConfigValidationIssue(
                path="fcm.ca_bundle_path",
                message=f"CA bundle not found: {ca_bundle}",
            )
        )

    if issues:
        raise ConfigValidationError(issues)

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic.networks import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from fcm_client.adapters.fcm.auth import DEFAULT_METADATA_TOKEN_URL
from fcm_client.adapters.fcm.client import DEFAULT_BASE_URL
from fcm_client.config.env_aliases import get_flat_env_settings_source


class _BaseSection(BaseModel):
    model_config = {"extra": "forbid"}


class FcmSettings(_BaseSection):
    project_id: str = Field(min_length=1)
    base_url: AnyHttpUrl = Field(default=DEFAULT_BASE_URL, validate_default=True)
    timeout_seconds: float = Field(default=10.0, gt=0)
    verify_tls: bool = True
    ca_bundle_path: Path | None = None

    @field_validator("ca_bundle_path")
    @classmethod
    def _expand_ca_bundle(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None


class AuthSettings(_BaseSection):
    mode: str = "static"  # static|metadata
    access_token: SecretStr | None = None
    metadata_url: str = DEFAULT_METADATA_TOKEN_URL
    metadata_timeout_seconds: float = Field(default=5.0, gt=0)

    @model_validator(mode="after")
    def _token_required_when_static(self) -> AuthSettings:
        mode = (self.mode or "").strip().lower()
        if mode not in {"static", "metadata"}:
            raise ValueError("auth.mode must be 'static' or 'metadata'")
        self.mode = mode

        token = self.access_token.get_secret_value().strip() if self.access_token else ""
        if mode == "static" and not token:
            raise ValueError("auth.mode is 'static' but auth.access_token is not set")
        return self


class ObservabilitySettings(_BaseSection):
    log_level: str = "INFO"
    log_format: str | None = None  # json|human (overrides LOG_FORMAT/env when set)
    json_logs: bool = False

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized in {"json", "human"}:
            return normalized
        raise ValueError("observability.log_format must be 'json' or 'human'")


class TransportHardeningSettings(_BaseSection):
    # If true, allow httpx to read HTTP_PROXY/HTTPS_PROXY/NO_PROXY and other env settings.
    trust_env: bool = False
    # Allow plaintext HTTP for the FCM endpoint. Only useful against local emulators.
    allow_insecure_http: bool = False
    # Allow disabling TLS verification for the FCM endpoint. Strongly discouraged.
    allow_insecure_tls: bool = False


class HardeningSettings(_BaseSection):
    transport: TransportHardeningSettings = Field(default_factory=TransportHardeningSettings)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        extra="forbid",
    )

    fcm: FcmSettings
    auth: AuthSettings
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    hardening: HardeningSettings = Field(default_factory=HardeningSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """
        Construct Settings from a mapping without reading environment variables.

        Useful in tests where we want to pass nested dicts and keep mypy happy.
        """
        class _InitOnlySettings(Settings):
            @classmethod
            def settings_customise_sources(
                cls,
                settings_cls,
                init_settings,
                env_settings,
                dotenv_settings,
                file_secret_settings,
            ):
                return (init_settings,)

        return _InitOnlySettings(**dict(data))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            env_settings,
            get_flat_env_settings_source,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

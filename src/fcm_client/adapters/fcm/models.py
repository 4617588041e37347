from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class _ResponseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class Notification(_RequestModel):
    title: str | None = None
    body: str | None = None
    image: str | None = None


class AndroidNotification(_RequestModel):
    title: str | None = None
    body: str | None = None
    icon: str | None = None
    color: str | None = None
    sound: str | None = None
    tag: str | None = None
    click_action: str | None = None
    channel_id: str | None = None


class AndroidConfig(_RequestModel):
    collapse_key: str | None = None
    priority: Literal["NORMAL", "HIGH"] | None = None
    # Duration in protobuf JSON form, e.g. "3600s".
    ttl: str | None = None
    restricted_package_name: str | None = None
    data: dict[str, str] | None = None
    notification: AndroidNotification | None = None


class ApnsConfig(_RequestModel):
    headers: dict[str, str] | None = None
    # Passed through verbatim; APNs keys ("aps", "content-available") are not camelCased.
    payload: dict[str, Any] | None = None


class WebpushConfig(_RequestModel):
    headers: dict[str, str] | None = None
    data: dict[str, str] | None = None
    notification: dict[str, Any] | None = None


class Message(_RequestModel):
    """A single FCM message. Exactly one of `token`, `topic` or `condition` is required."""

    token: str | None = None
    topic: str | None = None
    condition: str | None = None

    notification: Notification | None = None
    data: dict[str, str] | None = None
    android: AndroidConfig | None = None
    apns: ApnsConfig | None = None
    webpush: WebpushConfig | None = None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> Message:
        targets = [value for value in (self.token, self.topic, self.condition) if value]
        if len(targets) != 1:
            raise ValueError("message needs exactly one of token, topic or condition")
        return self


class SendRequest(_RequestModel):
    message: Message
    validate_only: bool | None = None


class SendResponse(_ResponseModel):
    # projects/<project_id>/messages/<message_id>
    name: str = Field(min_length=1)


class GoogleError(_ResponseModel):
    code: int | None = None
    message: str | None = None
    status: str | None = None
    details: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def fcm_error_code(self) -> str | None:
        """The `errorCode` from the FCM-specific detail entry, when present."""
        for item in self.details:
            if str(item.get("@type", "")).endswith("google.firebase.fcm.v1.FcmError"):
                code = item.get("errorCode")
                return str(code) if code else None
        return None


class GoogleErrorBody(_ResponseModel):
    """Envelope Google APIs use for error responses."""

    error: GoogleError

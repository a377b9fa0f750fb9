"""Translation of JSON trigger payloads into domain triggers."""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from teleporter.domain.reconciliation import ChangedTemplate, Trigger

if TYPE_CHECKING:
    from pathlib import Path


class TriggerPayloadError(ValueError):
    """Raised when a trigger payload cannot be turned into a trigger."""


class ChangedPathPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    path: str = Field(min_length=1)
    content: str | None = None
    content_base64: str | None = None

    @model_validator(mode="after")
    def _exactly_one_content(self) -> Self:
        if (self.content is None) == (self.content_base64 is None):
            raise ValueError("exactly one of 'content' and 'content_base64' is required")
        return self

    def decoded(self) -> bytes:
        if self.content is not None:
            return self.content.encode("utf-8")
        try:
            return base64.b64decode(self.content_base64 or "", validate=True)
        except binascii.Error as exc:
            raise TriggerPayloadError(f"content_base64 of {self.path} is not valid base64") from exc


class TriggerPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    category: str = Field(min_length=1)
    changed_paths: list[ChangedPathPayload]
    source_reference: str = ""
    repositories: list[str] | None = None

    def to_trigger(self) -> Trigger:
        return Trigger(
            category=self.category,
            changed_paths=tuple(
                ChangedTemplate(path=item.path, content=item.decoded())
                for item in self.changed_paths
            ),
            source_reference=self.source_reference,
            repositories=tuple(self.repositories) if self.repositories is not None else None,
        )


def parse_trigger(raw: str | bytes) -> Trigger:
    try:
        return TriggerPayload.model_validate_json(raw).to_trigger()
    except ValidationError as exc:
        raise TriggerPayloadError(f"Invalid trigger payload:\n{exc}") from exc
    except TriggerPayloadError:
        raise
    except ValueError as exc:
        raise TriggerPayloadError(str(exc)) from exc


def load_trigger(path: Path) -> Trigger:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise TriggerPayloadError(f"Cannot read trigger file {path}: {exc}") from exc
    return parse_trigger(raw)

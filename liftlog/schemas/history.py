"""History ledger schemas and the opaque keyset cursor."""

import base64
import binascii
import json
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from liftlog.core.errors import ValidationError
from liftlog.core.ids import new_id


class HistoryCreate(BaseModel):
    id: UUID | None = None
    workout_id: UUID | None = None
    performed_at: datetime | None = None  # Defaults to now
    duration_seconds: int | None = Field(None, ge=0)
    notes: str | None = None

    def with_id(self) -> "HistoryCreate":
        if self.id is not None:
            return self
        return self.model_copy(update={"id": new_id()})


class HistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    workout_id: UUID | None = None
    workout_name: str | None = None
    performed_at: datetime
    duration_seconds: int | None = None
    notes: str | None = None
    created_at: datetime


class HistoryCursor(BaseModel):
    """Sort key (performed_at, id) of the last row on a page."""

    performed_at: datetime
    id: UUID

    def encode(self) -> str:
        raw = self.model_dump_json().encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, token: str) -> "HistoryCursor":
        padded = token + "=" * (-len(token) % 4)
        try:
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            return cls.model_validate(json.loads(raw))
        except (binascii.Error, UnicodeError, ValueError, PydanticValidationError) as exc:
            raise ValidationError("Invalid history cursor", exc) from exc

    @classmethod
    def after(cls, entry: HistoryRead) -> "HistoryCursor":
        return cls(performed_at=entry.performed_at, id=entry.id)


class HistoryPage(BaseModel):
    data: list[HistoryRead]
    cursor: str | None = None  # Absent when has_more is false
    has_more: bool

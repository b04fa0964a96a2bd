"""User settings schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from liftlog.core.constants import MAX_USER_ID_LENGTH
from liftlog.core.enums import Units
from liftlog.core.ids import new_id


class SettingsUpdate(BaseModel):
    """Full replacement of a user's settings. Omitted fields fall back to defaults."""

    id: UUID | None = None
    user_id: str | None = Field(None, max_length=MAX_USER_ID_LENGTH)
    units: Units = Units.METRIC
    preferences: dict[str, Any] = Field(default_factory=dict)

    def with_id(self) -> "SettingsUpdate":
        if self.id is not None:
            return self
        return self.model_copy(update={"id": new_id()})


class SettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: str | None = None
    units: Units
    preferences: dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

"""Collectible schemas used by wantlist matching."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from numizmapp.schemas.common import ensure_utc


class CollectibleCreate(BaseModel):
    """Fields required to register a collectible."""

    name: str = Field(min_length=1)
    category: Literal["coin", "stamp", "banknote"] = "coin"
    image_url: str | None = None


class CollectibleRead(BaseModel):
    """Serialized collectible."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    category: str
    image_url: str | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

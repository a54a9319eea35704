"""Collectible reference embedded in attachment messages."""

from pydantic import BaseModel, ConfigDict, Field


class AttachedItem(BaseModel):
    """Compact reference to a collectible shared in chat."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    image_url: str | None = None

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Item(BaseModel):
    """A record addressable by its partition key `pk`."""

    model_config = ConfigDict(extra="ignore")

    pk: str = ""


class Website(Item):
    name: str = Field(min_length=1)
    description: str | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list)

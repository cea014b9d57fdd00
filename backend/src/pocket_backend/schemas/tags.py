from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
import uuid

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from ..models.tag import Tag


class TagWriteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        val = v.strip()
        if not val:
            raise ValueError("Tag name cannot be blank")
        return val


class TagCreateRequest(TagWriteRequest):
    pass


class TagUpdateRequest(TagWriteRequest):
    pass


class TagItem(BaseModel):
    id: str
    name: str
    created_at: datetime
    prompt_count: int | None = None

    @classmethod
    def from_model(cls, tag: "Tag", *, prompt_count: int | None = None) -> "TagItem":
        return cls(id=tag.id, name=tag.name, created_at=tag.created_at, prompt_count=prompt_count)


class TagsResponse(BaseModel):
    data: list[TagItem]


class PromptTagRequest(BaseModel):
    prompt_id: uuid.UUID
    tag_id: uuid.UUID


class PromptTagResponse(BaseModel):
    prompt_id: str
    tag_id: str
    prompt_name: str
    tag_name: str

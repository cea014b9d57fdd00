from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal
import uuid

from pydantic import BaseModel, Field, field_validator

from ..utils.templating import Parameter, ParameterType
from .tags import TagItem

if TYPE_CHECKING:
    from ..models.prompt import Prompt


SortField = Literal["name", "created_at", "updated_at"]
SortDirection = Literal["asc", "desc"]


class ParameterItem(BaseModel):
    name: str = Field(..., min_length=1)
    type: ParameterType = "short-text"

    def to_parameter(self) -> Parameter:
        return Parameter(name=self.name, type=self.type)


def _ensure_unique_names(items: list[ParameterItem] | None) -> list[ParameterItem] | None:
    if items is None:
        return None
    seen: set[str] = set()
    for item in items:
        if item.name in seen:
            raise ValueError(f"Duplicate parameter name: {item.name}")
        seen.add(item.name)
    return items


class PromptWriteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    content: str = Field(..., min_length=1)
    parameters: list[ParameterItem] | None = None
    tags: list[uuid.UUID] | None = None

    @field_validator("parameters")
    @classmethod
    def _unique_parameters(cls, v: list[ParameterItem] | None) -> list[ParameterItem] | None:
        return _ensure_unique_names(v)

    def parameter_definitions(self) -> list[Parameter] | None:
        if self.parameters is None:
            return None
        return [item.to_parameter() for item in self.parameters]

    def tag_ids(self) -> list[str] | None:
        if self.tags is None:
            return None
        return list(dict.fromkeys(str(tag) for tag in self.tags))


class PromptCreateRequest(PromptWriteRequest):
    pass


class PromptUpdateRequest(PromptWriteRequest):
    pass


class PromptItem(BaseModel):
    id: str
    name: str
    description: str | None = None
    content: str
    parameters: list[ParameterItem] = Field(default_factory=list)
    user_id: str
    created_at: datetime
    updated_at: datetime
    tags: list[TagItem] = Field(default_factory=list)

    @classmethod
    def from_model(cls, prompt: "Prompt") -> "PromptItem":
        raw = prompt.parameters if isinstance(prompt.parameters, list) else []
        return cls(
            id=prompt.id,
            name=prompt.name,
            description=prompt.description,
            content=prompt.content,
            parameters=[ParameterItem.model_validate(item) for item in raw],
            user_id=prompt.user_id,
            created_at=prompt.created_at,
            updated_at=prompt.updated_at,
            tags=[TagItem.from_model(tag) for tag in prompt.tags],
        )


class PromptFilterParams(BaseModel):
    search: str | None = None
    tags: list[str] = Field(default_factory=list)
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)
    sort_by: SortField = "updated_at"
    sort_dir: SortDirection = "desc"

    @field_validator("search", mode="before")
    @classmethod
    def _strip_search(cls, v: str | None) -> str | None:
        if v is None:
            return None
        val = str(v).strip()
        return val or None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: str | list[str] | None) -> list[str]:
        if v is None:
            return []
        raw = v.split(",") if isinstance(v, str) else list(v)
        out: list[str] = []
        for item in raw:
            item = str(item).strip()
            if not item:
                continue
            try:
                out.append(str(uuid.UUID(item)))
            except ValueError as exc:
                raise ValueError("Tags must be a comma-separated list of valid UUIDs.") from exc
        return list(dict.fromkeys(out))


class PaginationInfo(BaseModel):
    total_items: int
    total_pages: int
    current_page: int
    page_size: int


class PromptListResponse(BaseModel):
    data: list[PromptItem]
    pagination: PaginationInfo


class ParameterValuesRequest(BaseModel):
    values: dict[str, str] = Field(default_factory=dict)


class RenderedPromptResponse(BaseModel):
    content: str


class PromptPreviewResponse(BaseModel):
    content: str
    missing_count: int
    missing: list[str] = Field(default_factory=list)


class ExtractParametersRequest(BaseModel):
    content: str = ""
    parameters: list[ParameterItem] | None = None


class ExtractParametersResponse(BaseModel):
    names: list[str]
    parameters: list[ParameterItem]


class PromptImprovementRequest(BaseModel):
    content: str = Field(..., min_length=3, max_length=10000)
    instruction: str | None = Field(None, max_length=1000)


class PromptImprovementResponse(BaseModel):
    improved_content: str
    explanation: str

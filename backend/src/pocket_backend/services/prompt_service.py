from __future__ import annotations

import logging
import math
from typing import Mapping

from ..core.errors import PromptNameConflictError, PromptNotFoundError, TagNotFoundError
from ..models.prompt import Prompt
from ..repositories.prompt_repository import PromptRepository
from ..repositories.tag_repository import TagRepository
from ..schemas.prompts import (
    PaginationInfo,
    PromptFilterParams,
    PromptItem,
    PromptListResponse,
    PromptWriteRequest,
)
from ..utils.templating import (
    Parameter,
    PreviewResult,
    fill_strict,
    fill_with_placeholders,
    sync_parameters,
    validate_parameter_definitions,
)


log = logging.getLogger("pocket.services.prompt")


def _parameters_payload(parameters: list[Parameter] | None) -> list[dict]:
    return [{"name": p.name, "type": p.type} for p in parameters or []]


def _stored_parameters(prompt: Prompt) -> list[Parameter]:
    raw = prompt.parameters if isinstance(prompt.parameters, list) else []
    out: list[Parameter] = []
    for item in raw:
        if isinstance(item, dict) and item.get("name"):
            out.append(Parameter(name=str(item["name"]), type=item.get("type") or "short-text"))
    return out


class PromptService:
    """Prompt CRUD scoped to a single owner, plus rendering of stored prompts."""

    def __init__(self, prompts: PromptRepository, tags: TagRepository):
        self.prompts = prompts
        self.tags = tags

    def _require_owned_tags(self, tag_ids: list[str], user_id: str) -> None:
        found = {tag.id for tag in self.tags.list_by_ids_for_user(tag_ids, user_id)}
        for tag_id in tag_ids:
            if tag_id not in found:
                raise TagNotFoundError(tag_id)

    def _get_owned(self, prompt_id: str, user_id: str) -> Prompt:
        prompt = self.prompts.get_for_user(prompt_id, user_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        return prompt

    def create_prompt(self, *, user_id: str, payload: PromptWriteRequest) -> PromptItem:
        parameters = payload.parameter_definitions()
        validate_parameter_definitions(payload.content, parameters)
        # Definitions whose token is gone from the content are not stored
        parameters = sync_parameters(payload.content, parameters)
        if self.prompts.name_taken(user_id=user_id, name=payload.name):
            raise PromptNameConflictError()
        tag_ids = payload.tag_ids() or []
        self._require_owned_tags(tag_ids, user_id)

        prompt = self.prompts.create(
            user_id=user_id,
            name=payload.name,
            description=payload.description,
            content=payload.content,
            parameters=_parameters_payload(parameters),
        )
        if tag_ids:
            self.prompts.replace_tags(prompt, tag_ids)
        return PromptItem.from_model(prompt)

    def update_prompt(self, *, user_id: str, prompt_id: str, payload: PromptWriteRequest) -> PromptItem:
        parameters = payload.parameter_definitions()
        validate_parameter_definitions(payload.content, parameters)
        # Definitions whose token is gone from the content are not stored
        parameters = sync_parameters(payload.content, parameters)
        prompt = self._get_owned(prompt_id, user_id)
        if self.prompts.name_taken(user_id=user_id, name=payload.name, exclude_id=prompt.id):
            raise PromptNameConflictError()
        tag_ids = payload.tag_ids()
        if tag_ids is not None:
            self._require_owned_tags(tag_ids, user_id)

        self.prompts.update(
            prompt,
            name=payload.name,
            description=payload.description,
            content=payload.content,
            parameters=_parameters_payload(parameters),
        )
        # Tags are only touched when the caller sends them
        if tag_ids is not None:
            self.prompts.replace_tags(prompt, tag_ids)
        return PromptItem.from_model(prompt)

    def get_prompt(self, *, user_id: str, prompt_id: str) -> PromptItem:
        return PromptItem.from_model(self._get_owned(prompt_id, user_id))

    def delete_prompt(self, *, user_id: str, prompt_id: str) -> None:
        prompt = self._get_owned(prompt_id, user_id)
        self.prompts.delete(prompt)

    def list_prompts(self, *, user_id: str, filters: PromptFilterParams) -> PromptListResponse:
        offset = (filters.page - 1) * filters.page_size
        items, total = self.prompts.list_for_user(
            user_id=user_id,
            search=filters.search,
            tag_ids=filters.tags,
            sort_by=filters.sort_by,
            sort_dir=filters.sort_dir,
            offset=offset,
            limit=filters.page_size,
        )
        return PromptListResponse(
            data=[PromptItem.from_model(item) for item in items],
            pagination=PaginationInfo(
                total_items=total,
                total_pages=math.ceil(total / filters.page_size),
                current_page=filters.page,
                page_size=filters.page_size,
            ),
        )

    def render_prompt(self, *, user_id: str, prompt_id: str, values: Mapping[str, str]) -> str:
        """Final rendering (clipboard payload): every declared parameter needs a value."""
        prompt = self._get_owned(prompt_id, user_id)
        required = [p.name for p in _stored_parameters(prompt)]
        rendered = fill_strict(prompt.content, values, required=required or None)
        log.debug("Prompt rendered (id=%s, values=%d)", prompt.id, len(values))
        return rendered

    def preview_prompt(self, *, user_id: str, prompt_id: str, values: Mapping[str, str]) -> PreviewResult:
        prompt = self._get_owned(prompt_id, user_id)
        return fill_with_placeholders(prompt.content, values)

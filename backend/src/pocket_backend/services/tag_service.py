from __future__ import annotations

import logging

from ..core.errors import (
    AssociationNotFoundError,
    DuplicateAssociationError,
    PromptNotFoundError,
    TagAlreadyExistsError,
    TagNotFoundError,
    UnauthorizedAssociationError,
)
from ..repositories.prompt_repository import PromptRepository
from ..repositories.prompt_tag_repository import PromptTagRepository
from ..repositories.tag_repository import TagRepository
from ..schemas.tags import PromptTagResponse, TagItem


log = logging.getLogger("pocket.services.tag")


class TagService:
    def __init__(self, tags: TagRepository):
        self.tags = tags

    def list_tags(self, *, user_id: str) -> list[TagItem]:
        return [
            TagItem.from_model(tag, prompt_count=count)
            for tag, count in self.tags.list_with_prompt_counts(user_id)
        ]

    def create_tag(self, *, user_id: str, name: str) -> TagItem:
        if self.tags.name_exists(user_id=user_id, name=name):
            raise TagAlreadyExistsError(name)
        tag = self.tags.create(user_id=user_id, name=name)
        return TagItem.from_model(tag, prompt_count=0)

    def update_tag(self, *, user_id: str, tag_id: str, name: str) -> TagItem:
        tag = self.tags.get_for_user(tag_id, user_id)
        if tag is None:
            raise TagNotFoundError(tag_id)
        if self.tags.name_exists(user_id=user_id, name=name, exclude_id=tag.id):
            raise TagAlreadyExistsError(name)
        self.tags.rename(tag, name)
        return TagItem.from_model(tag, prompt_count=self.tags.prompt_count(tag.id))


class PromptTagService:
    """Assign and remove single tag/prompt associations."""

    def __init__(self, prompts: PromptRepository, tags: TagRepository, links: PromptTagRepository):
        self.prompts = prompts
        self.tags = tags
        self.links = links

    def _resolve(self, *, user_id: str, prompt_id: str, tag_id: str):
        prompt = self.prompts.get_for_user(prompt_id, user_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        tag = self.tags.get(tag_id)
        if tag is None:
            raise TagNotFoundError(tag_id)
        if tag.user_id != prompt.user_id:
            log.warning(
                "Cross-owner tag association rejected (prompt_id=%s, tag_id=%s)", prompt_id, tag_id
            )
            raise UnauthorizedAssociationError()
        return prompt, tag

    def assign(self, *, user_id: str, prompt_id: str, tag_id: str) -> PromptTagResponse:
        prompt, tag = self._resolve(user_id=user_id, prompt_id=prompt_id, tag_id=tag_id)
        if self.links.get(prompt.id, tag.id) is not None:
            raise DuplicateAssociationError(prompt.id, tag.id)
        self.links.add(prompt.id, tag.id)
        return PromptTagResponse(
            prompt_id=prompt.id,
            tag_id=tag.id,
            prompt_name=prompt.name,
            tag_name=tag.name,
        )

    def remove(self, *, user_id: str, prompt_id: str, tag_id: str) -> None:
        prompt, tag = self._resolve(user_id=user_id, prompt_id=prompt_id, tag_id=tag_id)
        link = self.links.get(prompt.id, tag.id)
        if link is None:
            raise AssociationNotFoundError(prompt.id, tag.id)
        self.links.remove(link)

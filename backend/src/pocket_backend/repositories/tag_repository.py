from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import TagAlreadyExistsError
from ..models.prompt import PromptTag
from ..models.tag import Tag


log = logging.getLogger("pocket.repositories.tag")


class TagRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, tag_id: str) -> Tag | None:
        return self.session.get(Tag, tag_id)

    def get_for_user(self, tag_id: str, user_id: str) -> Tag | None:
        return (
            self.session.query(Tag)
            .filter(Tag.id == tag_id, Tag.user_id == user_id)
            .one_or_none()
        )

    def list_by_ids_for_user(self, tag_ids: list[str], user_id: str) -> list[Tag]:
        if not tag_ids:
            return []
        return (
            self.session.query(Tag)
            .filter(Tag.id.in_(tag_ids), Tag.user_id == user_id)
            .all()
        )

    def name_exists(self, *, user_id: str, name: str, exclude_id: str | None = None) -> bool:
        query = self.session.query(Tag.id).filter(
            Tag.user_id == user_id,
            func.lower(Tag.name) == func.lower(name),
        )
        if exclude_id is not None:
            query = query.filter(Tag.id != exclude_id)
        return query.first() is not None

    def _flush_named(self, user_id: str, name: str) -> None:
        # uq_tags_user_name catches a concurrent writer that passed name_exists
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            log.warning("Tag name conflict on write (user_id=%s, name=%s)", user_id, name)
            raise TagAlreadyExistsError(name) from exc

    def create(self, *, user_id: str, name: str) -> Tag:
        tag = Tag(user_id=user_id, name=name)
        self.session.add(tag)
        self._flush_named(user_id, name)
        log.info("Tag created (id=%s, user_id=%s, name=%s)", tag.id, user_id, name)
        return tag

    def rename(self, tag: Tag, name: str) -> Tag:
        previous = tag.name
        tag.name = name
        self._flush_named(tag.user_id, name)
        log.info("Tag renamed (id=%s, %s -> %s)", tag.id, previous, name)
        return tag

    def prompt_count(self, tag_id: str) -> int:
        count = self.session.scalar(
            select(func.count()).select_from(PromptTag).where(PromptTag.tag_id == tag_id)
        )
        return int(count or 0)

    def list_with_prompt_counts(self, user_id: str) -> list[tuple[Tag, int]]:
        rows = (
            self.session.query(Tag, func.count(PromptTag.prompt_id))
            .outerjoin(PromptTag, PromptTag.tag_id == Tag.id)
            .filter(Tag.user_id == user_id)
            .group_by(Tag.id)
            .order_by(Tag.name.asc(), Tag.id.asc())
            .all()
        )
        log.debug("Loaded %d tags for user_id=%s", len(rows), user_id)
        return [(tag, int(count)) for tag, count in rows]

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..core.errors import PromptNameConflictError
from ..models.prompt import Prompt, PromptTag


log = logging.getLogger("pocket.repositories.prompt")


_SORT_COLUMNS = {
    "name": Prompt.name,
    "created_at": Prompt.created_at,
    "updated_at": Prompt.updated_at,
}


class PromptRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        *,
        user_id: str,
        name: str,
        description: str | None,
        content: str,
        parameters: list[dict],
    ) -> Prompt:
        prompt = Prompt(
            user_id=user_id,
            name=name,
            description=description,
            content=content,
            parameters=parameters,
        )
        self.session.add(prompt)
        self._flush_named(user_id, name)
        log.info("Prompt created (id=%s, user_id=%s, name=%s)", prompt.id, user_id, name)
        return prompt

    def _flush_named(self, user_id: str, name: str) -> None:
        # uq_prompts_user_name catches a concurrent writer that passed name_taken
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            log.warning("Prompt name conflict on write (user_id=%s, name=%s)", user_id, name)
            raise PromptNameConflictError() from exc

    def get_for_user(self, prompt_id: str, user_id: str) -> Prompt | None:
        return (
            self.session.query(Prompt)
            .options(selectinload(Prompt.tags))
            .filter(Prompt.id == prompt_id, Prompt.user_id == user_id)
            .one_or_none()
        )

    def name_taken(self, *, user_id: str, name: str, exclude_id: str | None = None) -> bool:
        query = self.session.query(Prompt.id).filter(Prompt.user_id == user_id, Prompt.name == name)
        if exclude_id is not None:
            query = query.filter(Prompt.id != exclude_id)
        return query.first() is not None

    def update(
        self,
        prompt: Prompt,
        *,
        name: str,
        description: str | None,
        content: str,
        parameters: list[dict],
    ) -> Prompt:
        prompt.name = name
        prompt.description = description
        prompt.content = content
        prompt.parameters = parameters
        prompt.updated_at = datetime.now(timezone.utc)
        self._flush_named(prompt.user_id, name)
        log.info("Prompt updated (id=%s, name=%s)", prompt.id, name)
        return prompt

    def delete(self, prompt: Prompt) -> None:
        self.session.query(PromptTag).filter(PromptTag.prompt_id == prompt.id).delete()
        self.session.delete(prompt)
        self.session.flush()
        log.info("Prompt deleted (id=%s)", prompt.id)

    def replace_tags(self, prompt: Prompt, tag_ids: Iterable[str]) -> None:
        self.session.query(PromptTag).filter(PromptTag.prompt_id == prompt.id).delete()
        ids = list(dict.fromkeys(tag_ids))
        for tag_id in ids:
            self.session.add(PromptTag(prompt_id=prompt.id, tag_id=tag_id))
        self.session.flush()
        self.session.expire(prompt, ["tags"])
        log.info("Prompt tags replaced (id=%s, count=%d)", prompt.id, len(ids))

    def list_for_user(
        self,
        *,
        user_id: str,
        search: str | None,
        tag_ids: list[str],
        sort_by: str,
        sort_dir: str,
        offset: int,
        limit: int,
    ) -> tuple[list[Prompt], int]:
        """Return one page of prompts plus the total count matching the filters.

        With ``tag_ids`` a prompt must carry every listed tag.
        """
        stmt = select(Prompt).where(Prompt.user_id == user_id)
        if search:
            stmt = stmt.where(Prompt.name.ilike(f"%{_escape_like(search)}%", escape="\\"))
        if tag_ids:
            matching = (
                select(PromptTag.prompt_id)
                .where(PromptTag.tag_id.in_(tag_ids))
                .group_by(PromptTag.prompt_id)
                .having(func.count(func.distinct(PromptTag.tag_id)) == len(tag_ids))
            )
            stmt = stmt.where(Prompt.id.in_(matching))

        total = self.session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        column = _SORT_COLUMNS.get(sort_by, Prompt.updated_at)
        ordering = column.asc() if sort_dir == "asc" else column.desc()
        items = (
            self.session.scalars(
                stmt.options(selectinload(Prompt.tags))
                .order_by(ordering, Prompt.id.asc())
                .offset(offset)
                .limit(limit)
            )
            .all()
        )
        log.debug(
            "Loaded %d/%d prompts (user_id=%s, search=%r, tags=%d)",
            len(items),
            total,
            user_id,
            search,
            len(tag_ids),
        )
        return list(items), int(total)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

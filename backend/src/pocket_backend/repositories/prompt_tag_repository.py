from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import DuplicateAssociationError
from ..models.prompt import PromptTag


log = logging.getLogger("pocket.repositories.prompt_tag")


class PromptTagRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, prompt_id: str, tag_id: str) -> PromptTag | None:
        return self.session.get(PromptTag, (prompt_id, tag_id))

    def add(self, prompt_id: str, tag_id: str) -> PromptTag:
        link = PromptTag(prompt_id=prompt_id, tag_id=tag_id)
        self.session.add(link)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateAssociationError(prompt_id, tag_id) from exc
        log.info("Tag assigned (prompt_id=%s, tag_id=%s)", prompt_id, tag_id)
        return link

    def remove(self, link: PromptTag) -> None:
        self.session.delete(link)
        self.session.flush()
        log.info("Tag removed (prompt_id=%s, tag_id=%s)", link.prompt_id, link.tag_id)

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ....core.database import get_session
from ....core.errors import TagAlreadyExistsError, TagNotFoundError
from ....core.security import CurrentUser, get_current_user
from ....repositories.tag_repository import TagRepository
from ....schemas.tags import TagCreateRequest, TagItem, TagsResponse, TagUpdateRequest
from ....services.tag_service import TagService


router = APIRouter(prefix="/tags")


@router.get("", response_model=TagsResponse)
def list_tags(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TagsResponse:
    service = TagService(TagRepository(session))
    return TagsResponse(data=service.list_tags(user_id=current_user.id))


@router.post("", response_model=TagItem, status_code=status.HTTP_201_CREATED)
def create_tag(
    payload: TagCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TagItem:
    service = TagService(TagRepository(session))
    try:
        tag = service.create_tag(user_id=current_user.id, name=payload.name)
    except TagAlreadyExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    session.commit()
    return tag


@router.patch("/{tag_id}", response_model=TagItem)
def update_tag(
    tag_id: uuid.UUID,
    payload: TagUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TagItem:
    service = TagService(TagRepository(session))
    try:
        tag = service.update_tag(user_id=current_user.id, tag_id=str(tag_id), name=payload.name)
    except TagNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except TagAlreadyExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    session.commit()
    return tag

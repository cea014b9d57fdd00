from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ....core.database import get_session
from ....core.errors import (
    AssociationNotFoundError,
    DuplicateAssociationError,
    PromptNotFoundError,
    TagNotFoundError,
    UnauthorizedAssociationError,
)
from ....core.security import CurrentUser, get_current_user
from ....repositories.prompt_repository import PromptRepository
from ....repositories.prompt_tag_repository import PromptTagRepository
from ....repositories.tag_repository import TagRepository
from ....schemas.tags import PromptTagRequest, PromptTagResponse
from ....services.tag_service import PromptTagService


router = APIRouter(prefix="/prompt-tags")


def _service(session: Session) -> PromptTagService:
    return PromptTagService(
        PromptRepository(session),
        TagRepository(session),
        PromptTagRepository(session),
    )


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, (PromptNotFoundError, TagNotFoundError, AssociationNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, UnauthorizedAssociationError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.post("", response_model=PromptTagResponse, status_code=status.HTTP_201_CREATED)
def assign_tag(
    payload: PromptTagRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PromptTagResponse:
    try:
        link = _service(session).assign(
            user_id=current_user.id,
            prompt_id=str(payload.prompt_id),
            tag_id=str(payload.tag_id),
        )
    except (
        PromptNotFoundError,
        TagNotFoundError,
        UnauthorizedAssociationError,
        DuplicateAssociationError,
    ) as exc:
        raise _translate(exc) from exc
    session.commit()
    return link


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def remove_tag(
    payload: PromptTagRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    try:
        _service(session).remove(
            user_id=current_user.id,
            prompt_id=str(payload.prompt_id),
            tag_id=str(payload.tag_id),
        )
    except (
        PromptNotFoundError,
        TagNotFoundError,
        UnauthorizedAssociationError,
        AssociationNotFoundError,
    ) as exc:
        raise _translate(exc) from exc
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

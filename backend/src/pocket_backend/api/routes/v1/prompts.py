from __future__ import annotations

import logging
from typing import NoReturn
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ....core.database import get_session
from ....core.errors import (
    MissingParameterDefinitionsError,
    PromptImprovementError,
    PromptImprovementRefusedError,
    PromptNameConflictError,
    PromptNotFoundError,
    RequiredValuesMissingError,
    TagNotFoundError,
    UndefinedParametersError,
)
from ....core.prompts import get_prompt_store
from ....core.security import CurrentUser, get_current_user
from ....integrations.openai_client import LLMBackendError, get_llm_client
from ....repositories.prompt_repository import PromptRepository
from ....repositories.tag_repository import TagRepository
from ....schemas.prompts import (
    ParameterValuesRequest,
    PromptCreateRequest,
    PromptFilterParams,
    PromptImprovementRequest,
    PromptImprovementResponse,
    PromptItem,
    PromptListResponse,
    PromptPreviewResponse,
    PromptUpdateRequest,
    RenderedPromptResponse,
)
from ....services.prompt_improvement_service import PromptImprovementService
from ....services.prompt_service import PromptService


log = logging.getLogger("pocket.api.prompts")

router = APIRouter(prefix="/prompts")


def _service(session: Session) -> PromptService:
    return PromptService(PromptRepository(session), TagRepository(session))


def get_improvement_service() -> PromptImprovementService:
    return PromptImprovementService(client=get_llm_client(), store=get_prompt_store())


def _filters(
    search: str | None = Query(None),
    tags: str | None = Query(None),
    page: int = Query(1),
    page_size: int = Query(20),
    sort_by: str = Query("updated_at"),
    sort_dir: str = Query("desc"),
) -> PromptFilterParams:
    try:
        return PromptFilterParams(
            search=search,
            tags=tags,
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_dir=sort_dir,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid query parameters",
                "details": exc.errors(include_url=False, include_context=False),
            },
        ) from exc


def _raise_write_error(exc: Exception) -> NoReturn:
    if isinstance(exc, MissingParameterDefinitionsError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(exc), "parameters": exc.parameters},
        ) from exc
    if isinstance(exc, UndefinedParametersError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(exc), "missingParameters": exc.missing_parameters},
        ) from exc
    if isinstance(exc, PromptNameConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, (PromptNotFoundError, TagNotFoundError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    raise exc


@router.get("", response_model=PromptListResponse)
def list_prompts(
    filters: PromptFilterParams = Depends(_filters),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PromptListResponse:
    return _service(session).list_prompts(user_id=current_user.id, filters=filters)


@router.post("", response_model=PromptItem, status_code=status.HTTP_201_CREATED)
def create_prompt(
    payload: PromptCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PromptItem:
    try:
        prompt = _service(session).create_prompt(user_id=current_user.id, payload=payload)
    except (
        MissingParameterDefinitionsError,
        UndefinedParametersError,
        PromptNameConflictError,
        TagNotFoundError,
    ) as exc:
        _raise_write_error(exc)
    session.commit()
    return prompt


@router.post("/improve", response_model=PromptImprovementResponse)
def improve_prompt(
    payload: PromptImprovementRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: PromptImprovementService = Depends(get_improvement_service),
) -> PromptImprovementResponse:
    try:
        return service.improve(content=payload.content, instruction=payload.instruction)
    except PromptImprovementRefusedError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except PromptImprovementError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to improve prompt. Please try again later.",
        ) from exc
    except LLMBackendError as exc:
        if exc.kind == "rate_limit":
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="AI request rate limit exceeded. Please try again later.",
            ) from exc
        if exc.kind in {"unreachable", "upstream"}:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="AI service is currently unavailable. Please try again later.",
            ) from exc
        log.error("Prompt improvement failed for user_id=%s: %s", current_user.id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to improve prompt. Please try again later.",
        ) from exc


@router.get("/{prompt_id}", response_model=PromptItem)
def get_prompt(
    prompt_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PromptItem:
    try:
        return _service(session).get_prompt(user_id=current_user.id, prompt_id=str(prompt_id))
    except PromptNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.put("/{prompt_id}", response_model=PromptItem)
def update_prompt(
    prompt_id: uuid.UUID,
    payload: PromptUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PromptItem:
    try:
        prompt = _service(session).update_prompt(
            user_id=current_user.id,
            prompt_id=str(prompt_id),
            payload=payload,
        )
    except (
        MissingParameterDefinitionsError,
        UndefinedParametersError,
        PromptNameConflictError,
        PromptNotFoundError,
        TagNotFoundError,
    ) as exc:
        _raise_write_error(exc)
    session.commit()
    return prompt


@router.delete("/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prompt(
    prompt_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    try:
        _service(session).delete_prompt(user_id=current_user.id, prompt_id=str(prompt_id))
    except PromptNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{prompt_id}/render", response_model=RenderedPromptResponse)
def render_prompt(
    prompt_id: uuid.UUID,
    payload: ParameterValuesRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> RenderedPromptResponse:
    try:
        content = _service(session).render_prompt(
            user_id=current_user.id,
            prompt_id=str(prompt_id),
            values=payload.values,
        )
    except PromptNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RequiredValuesMissingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(exc), "missingParameters": exc.missing},
        ) from exc
    return RenderedPromptResponse(content=content)


@router.post("/{prompt_id}/preview", response_model=PromptPreviewResponse)
def preview_prompt(
    prompt_id: uuid.UUID,
    payload: ParameterValuesRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PromptPreviewResponse:
    try:
        result = _service(session).preview_prompt(
            user_id=current_user.id,
            prompt_id=str(prompt_id),
            values=payload.values,
        )
    except PromptNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return PromptPreviewResponse(
        content=result.text,
        missing_count=result.missing_count,
        missing=result.missing,
    )

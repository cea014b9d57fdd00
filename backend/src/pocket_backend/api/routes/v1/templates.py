from fastapi import APIRouter, Depends

from ....core.security import CurrentUser, get_current_user
from ....schemas.prompts import ExtractParametersRequest, ExtractParametersResponse, ParameterItem
from ....utils.templating import extract_parameters, sync_parameters


router = APIRouter(prefix="/templates")


@router.post("/parameters", response_model=ExtractParametersResponse)
def extract_template_parameters(
    payload: ExtractParametersRequest,
    current_user: CurrentUser = Depends(get_current_user),
) -> ExtractParametersResponse:
    existing = [item.to_parameter() for item in payload.parameters or []]
    synced = sync_parameters(payload.content, existing)
    return ExtractParametersResponse(
        names=extract_parameters(payload.content),
        parameters=[ParameterItem(name=p.name, type=p.type) for p in synced],
    )

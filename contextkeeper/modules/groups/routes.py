from fastapi import APIRouter, Depends, Path
from contextkeeper.core.dependencies import enforce_rate_limit, get_current_user_id, get_gateway
from contextkeeper.core.responses import SuccessResponse
from contextkeeper.database.gateway import MAX_ROW_ID, StorageGateway
from contextkeeper.modules.groups.schemas import GroupCreate, GroupResponse
from contextkeeper.modules.groups.service import GroupService
from typing import List

router = APIRouter(
    prefix="/groups",
    tags=["groups"],
    dependencies=[Depends(enforce_rate_limit), Depends(get_current_user_id)],
)


def get_group_service(gateway: StorageGateway = Depends(get_gateway)) -> GroupService:
    return GroupService(gateway)


@router.post("", response_model=SuccessResponse[GroupResponse], response_model_exclude_none=True, status_code=201)
def create_group(
    group_data: GroupCreate,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group (color defaults to blue)"""
    return SuccessResponse(data=service.create_group(user_id, group_data))


@router.get("", response_model=SuccessResponse[List[GroupResponse]], response_model_exclude_none=True)
def list_groups(
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    return SuccessResponse(data=service.list_groups(user_id))


@router.delete("/{group_id}", response_model=SuccessResponse, response_model_exclude_none=True)
def delete_group(
    group_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    service.delete_group(user_id, group_id)
    return SuccessResponse(message="Group deleted successfully")

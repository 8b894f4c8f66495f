from fastapi import APIRouter, Depends, Path
from contextkeeper.config import Settings
from contextkeeper.core.dependencies import enforce_rate_limit, get_current_user_id, get_gateway, get_settings
from contextkeeper.core.responses import SuccessResponse
from contextkeeper.database.gateway import MAX_ROW_ID, StorageGateway
from contextkeeper.modules.workspaces.schemas import (
    WorkspaceCreate, WorkspaceUpdate, WorkspaceResponse
)
from contextkeeper.modules.workspaces.service import WorkspaceService
from typing import List

router = APIRouter(
    prefix="/workspaces",
    tags=["workspaces"],
    dependencies=[Depends(enforce_rate_limit), Depends(get_current_user_id)],
)


def get_workspace_service(
    gateway: StorageGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> WorkspaceService:
    return WorkspaceService(gateway, max_workspaces_per_user=settings.max_workspaces_per_user)


@router.post(
    "",
    response_model=SuccessResponse[WorkspaceResponse],
    response_model_exclude_none=True,
    status_code=201,
)
def create_workspace(
    workspace_data: WorkspaceCreate,
    user_id: str = Depends(get_current_user_id),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Save a workspace and its tabs"""
    return SuccessResponse(data=service.create_workspace(user_id, workspace_data))


@router.get(
    "",
    response_model=SuccessResponse[List[WorkspaceResponse]],
    response_model_exclude_none=True,
)
def list_workspaces(
    user_id: str = Depends(get_current_user_id),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """List the caller's workspaces, newest first"""
    return SuccessResponse(data=service.list_workspaces(user_id))


@router.get(
    "/{workspace_id}",
    response_model=SuccessResponse[WorkspaceResponse],
    response_model_exclude_none=True,
)
def get_workspace(
    workspace_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    user_id: str = Depends(get_current_user_id),
    service: WorkspaceService = Depends(get_workspace_service)
):
    return SuccessResponse(data=service.get_workspace(user_id, workspace_id))


@router.put(
    "/{workspace_id}",
    response_model=SuccessResponse[WorkspaceResponse],
    response_model_exclude_none=True,
)
def update_workspace(
    workspace_data: WorkspaceUpdate,
    workspace_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    user_id: str = Depends(get_current_user_id),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Rename, re-describe or touch last_accessed_at"""
    return SuccessResponse(data=service.update_workspace(user_id, workspace_id, workspace_data))


@router.delete("/{workspace_id}", response_model=SuccessResponse, response_model_exclude_none=True)
def delete_workspace(
    workspace_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    user_id: str = Depends(get_current_user_id),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Delete a workspace and all of its tabs"""
    service.delete_workspace(user_id, workspace_id)
    return SuccessResponse(message="Workspace deleted successfully")

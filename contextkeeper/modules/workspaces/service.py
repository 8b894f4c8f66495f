from contextkeeper.core.errors import InvalidInput, NotFound, StorageError
from contextkeeper.database.gateway import StorageGateway
from contextkeeper.modules.workspaces.schemas import (
    WorkspaceCreate, WorkspaceUpdate, WorkspaceResponse
)
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

WORKSPACE_ORDER = (("created_at", True), ("id", True))
TAB_ORDER = (("position", False), ("id", False))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkspaceService:
    def __init__(self, gateway: StorageGateway, max_workspaces_per_user: Optional[int] = None):
        self.gateway = gateway
        self.max_workspaces_per_user = max_workspaces_per_user

    def _get_tabs(self, user_id: str, workspace_id: int) -> List[Dict[str, Any]]:
        return self.gateway.select_children(
            "tabs", "workspaces", "workspace_id", workspace_id, user_id, order_by=TAB_ORDER
        )

    def create_workspace(self, user_id: str, workspace_data: WorkspaceCreate) -> WorkspaceResponse:
        """Create a workspace together with its tabs"""
        if not workspace_data.name.strip():
            raise InvalidInput("Workspace name is required")
        if not workspace_data.tabs:
            raise InvalidInput("At least one tab is required")
        if any(not tab.url.strip() for tab in workspace_data.tabs):
            raise InvalidInput("Every tab needs a url")

        if self.max_workspaces_per_user is not None:
            owned = self.gateway.count("workspaces", user_id)
            if owned >= self.max_workspaces_per_user:
                raise InvalidInput(
                    f"Workspace limit reached ({self.max_workspaces_per_user} per user)"
                )

        now = _now()
        workspace_row = {
            "user_id": user_id,
            "name": workspace_data.name,
            "description": workspace_data.description,
            "created_at": now,
            "updated_at": now,
        }
        tab_rows = [
            {
                "url": tab.url,
                "title": tab.title,
                "favicon_url": tab.favicon_url,
                "position": tab.position,
            }
            for tab in workspace_data.tabs
        ]
        workspace = self.gateway.create_workspace_with_tabs(workspace_row, tab_rows)
        logger.info(
            "Created workspace %s with %d tab(s) for user %s",
            workspace["id"], len(workspace["tabs"]), user_id,
        )
        return WorkspaceResponse(**workspace)

    def list_workspaces(self, user_id: str) -> List[WorkspaceResponse]:
        """List the user's workspaces, newest first, each with its tabs"""
        workspaces = self.gateway.select("workspaces", user_id, order_by=WORKSPACE_ORDER)
        for workspace in workspaces:
            # One failed tab read degrades that entry instead of failing the whole list
            try:
                workspace["tabs"] = self._get_tabs(user_id, workspace["id"])
            except StorageError as e:
                logger.warning(
                    "Could not load tabs for workspace %s, returning it without tabs: %s",
                    workspace["id"], e.detail,
                )
                workspace["tabs"] = []
        return [WorkspaceResponse(**workspace) for workspace in workspaces]

    def get_workspace(self, user_id: str, workspace_id: int) -> WorkspaceResponse:
        rows = self.gateway.select("workspaces", user_id, {"id": workspace_id})
        if not rows:
            raise NotFound("Workspace not found")
        workspace = rows[0]
        workspace["tabs"] = self._get_tabs(user_id, workspace_id)
        return WorkspaceResponse(**workspace)

    def update_workspace(
        self, user_id: str, workspace_id: int, workspace_data: WorkspaceUpdate
    ) -> WorkspaceResponse:
        """Apply the supplied fields and refresh updated_at"""
        update_data: Dict[str, Any] = {"updated_at": _now()}
        if workspace_data.name is not None:
            if not workspace_data.name.strip():
                raise InvalidInput("Workspace name cannot be empty")
            update_data["name"] = workspace_data.name
        if workspace_data.description is not None:
            update_data["description"] = workspace_data.description
        if workspace_data.last_accessed_at is not None:
            update_data["last_accessed_at"] = workspace_data.last_accessed_at.isoformat()

        workspace = self.gateway.update("workspaces", user_id, {"id": workspace_id}, update_data)
        if not workspace:
            raise NotFound("Workspace not found")
        workspace["tabs"] = self._get_tabs(user_id, workspace_id)
        return WorkspaceResponse(**workspace)

    def delete_workspace(self, user_id: str, workspace_id: int) -> None:
        """Delete a workspace; its tabs go with it through the foreign key cascade"""
        deleted = self.gateway.delete("workspaces", user_id, {"id": workspace_id})
        if not deleted:
            raise NotFound("Workspace not found")
        logger.info("Deleted workspace %s for user %s", workspace_id, user_id)

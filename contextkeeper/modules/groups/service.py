from contextkeeper.core.errors import InvalidInput, NotFound
from contextkeeper.database.gateway import StorageGateway
from contextkeeper.modules.groups.schemas import GroupCreate, GroupResponse, DEFAULT_GROUP_COLOR
from typing import List
from datetime import datetime, timezone


class GroupService:
    def __init__(self, gateway: StorageGateway):
        self.gateway = gateway

    def create_group(self, user_id: str, group_data: GroupCreate) -> GroupResponse:
        """Create a new group"""
        if not group_data.name.strip():
            raise InvalidInput("Group name is required")
        group = self.gateway.insert_one("groups", {
            "user_id": user_id,
            "name": group_data.name,
            "color": group_data.color or DEFAULT_GROUP_COLOR,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        return GroupResponse(**group)

    def list_groups(self, user_id: str) -> List[GroupResponse]:
        result = self.gateway.select(
            "groups", user_id, order_by=(("created_at", True), ("id", True))
        )
        return [GroupResponse(**group) for group in result]

    def delete_group(self, user_id: str, group_id: int) -> None:
        if not self.gateway.delete("groups", user_id, {"id": group_id}):
            raise NotFound("Group not found")

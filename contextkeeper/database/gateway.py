"""
Storage gateway: the only place that talks to PostgREST.

Every read, update and delete is scoped by the owning user. Tables without a
``user_id`` column (tabs) are scoped through an inner join on their parent.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from contextkeeper.core.errors import InternalError, StorageError, StorageRejected, StorageUnavailable

logger = logging.getLogger(__name__)

OWNER_COLUMN = "user_id"
# Ids are bigint identity columns
MAX_ROW_ID = 2**63 - 1
CREATE_WORKSPACE_FUNCTION = "create_workspace_with_tabs"

# PostgREST could not reach or use the database, or a proxy in front of it failed
_UNAVAILABLE_CODES = {"PGRST000", "PGRST001", "PGRST002", "PGRST003", "502", "503", "504"}

OrderBy = Sequence[Tuple[str, bool]]  # (column, descending)


class StorageGateway:
    def __init__(self, supabase: Client, atomic_write_mode: str = "rpc"):
        if atomic_write_mode not in ("rpc", "compensating"):
            raise ValueError(f"Unknown atomic write mode: {atomic_write_mode}")
        self.supabase = supabase
        self.atomic_write_mode = atomic_write_mode

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as e:
            code = str(e.code) if e.code is not None else ""
            if code in _UNAVAILABLE_CODES:
                logger.error("Storage unavailable during %s: %s (%s)", action, e.message, code)
                raise StorageUnavailable(detail=e.message) from e
            logger.warning("Storage rejected %s: %s (%s)", action, e.message, code)
            raise StorageRejected(detail=e.message) from e
        except httpx.HTTPError as e:
            logger.error("Storage transport failure during %s: %s", action, e)
            raise StorageUnavailable(detail=str(e)) from e

    @staticmethod
    def _scoped(query, owner_id: str, filters: Optional[Dict[str, Any]], owner_column: str = OWNER_COLUMN):
        if not owner_id:
            raise ValueError("owner_id is required for scoped storage operations")
        query = query.eq(owner_column, owner_id)
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        return query

    @staticmethod
    def _ordered(query, order_by: OrderBy):
        for column, descending in order_by:
            query = query.order(column, desc=descending)
        return query

    def insert_one(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        result = self._execute(self.supabase.table(table).insert(row), f"insert into {table}")
        if not result.data:
            raise InternalError(f"Failed to read back inserted {table} row")
        return result.data[0]

    def count(self, table: str, owner_id: str) -> int:
        query = self._scoped(self.supabase.table(table).select("id", count="exact", head=True), owner_id, None)
        result = self._execute(query, f"count {table}")
        return result.count or 0

    def select(
        self,
        table: str,
        owner_id: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: OrderBy = (),
    ) -> List[Dict[str, Any]]:
        query = self._scoped(self.supabase.table(table).select("*"), owner_id, filters)
        result = self._execute(self._ordered(query, order_by), f"select from {table}")
        return result.data or []

    def select_children(
        self,
        child_table: str,
        parent_table: str,
        foreign_key: str,
        parent_id: Any,
        owner_id: str,
        order_by: OrderBy = (),
    ) -> List[Dict[str, Any]]:
        """Rows of child_table belonging to parent_id, only if the parent is owned by owner_id."""
        query = self.supabase.table(child_table).select(f"*, {parent_table}!inner({OWNER_COLUMN})")
        query = self._scoped(
            query, owner_id, {foreign_key: parent_id}, owner_column=f"{parent_table}.{OWNER_COLUMN}"
        )
        result = self._execute(self._ordered(query, order_by), f"select from {child_table}")
        rows = result.data or []
        for row in rows:
            row.pop(parent_table, None)
        return rows

    def update(
        self,
        table: str,
        owner_id: str,
        filters: Dict[str, Any],
        values: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Update matching rows; returns the first updated row or None when nothing matched."""
        if not filters:
            raise ValueError("update requires at least one filter besides the owner")
        query = self._scoped(self.supabase.table(table).update(values), owner_id, filters)
        result = self._execute(query, f"update {table}")
        return result.data[0] if result.data else None

    def delete(self, table: str, owner_id: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Delete matching rows; returns the deleted rows (empty when nothing matched)."""
        if not filters:
            raise ValueError("delete requires at least one filter besides the owner")
        query = self._scoped(self.supabase.table(table).delete(), owner_id, filters)
        result = self._execute(query, f"delete from {table}")
        return result.data or []

    def create_workspace_with_tabs(
        self, workspace_row: Dict[str, Any], tab_rows: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Insert a workspace and its tabs so that either all rows persist or none do.

        Returns the workspace row with a ``tabs`` list in the order supplied.
        """
        if self.atomic_write_mode == "rpc":
            return self._create_workspace_rpc(workspace_row, tab_rows)
        return self._create_workspace_compensating(workspace_row, tab_rows)

    def _create_workspace_rpc(self, workspace_row, tab_rows):
        # The database function runs in a single transaction: parent first, then tabs,
        # and any failure rolls back every row it wrote.
        params = {
            "p_user_id": workspace_row[OWNER_COLUMN],
            "p_name": workspace_row["name"],
            "p_description": workspace_row.get("description"),
            "p_now": workspace_row["created_at"],
            "p_tabs": tab_rows,
        }
        result = self._execute(
            self.supabase.rpc(CREATE_WORKSPACE_FUNCTION, params), "create workspace"
        )
        workspace = result.data
        if isinstance(workspace, list):
            workspace = workspace[0] if workspace else None
        if not workspace or "id" not in workspace:
            raise InternalError("Failed to parse workspace response")
        workspace.setdefault("tabs", [])
        return workspace

    def _create_workspace_compensating(self, workspace_row, tab_rows):
        # Fallback without a database transaction. A crash between the two inserts
        # leaves a tab-less workspace behind, and readers may briefly see the parent
        # before its tabs exist.
        workspace = self.insert_one("workspaces", workspace_row)
        rows = [{**tab, "workspace_id": workspace["id"]} for tab in tab_rows]
        try:
            result = self._execute(self.supabase.table("tabs").insert(rows), "insert into tabs")
            if len(result.data or []) != len(rows):
                raise InternalError("Failed to read back inserted tabs")
        except (StorageError, InternalError):
            self._discard_workspace(workspace)
            raise
        workspace["tabs"] = result.data
        return workspace

    def _discard_workspace(self, workspace: Dict[str, Any]) -> None:
        try:
            self.delete("workspaces", workspace[OWNER_COLUMN], {"id": workspace["id"]})
            logger.info("Removed workspace %s after failed tab insert", workspace["id"])
        except StorageError as e:
            logger.error(
                "Could not remove workspace %s after failed tab insert, it is left without tabs: %s",
                workspace["id"], e.detail,
            )

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class TabCreate(BaseModel):
    url: str
    title: Optional[str] = None
    favicon_url: Optional[str] = None
    position: int = 0


class WorkspaceCreate(BaseModel):
    name: str
    description: Optional[str] = None
    tabs: List[TabCreate]


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    last_accessed_at: Optional[datetime] = None


class TabResponse(BaseModel):
    id: int
    workspace_id: int
    url: str
    title: Optional[str] = None
    favicon_url: Optional[str] = None
    position: int
    created_at: Optional[datetime] = None


class WorkspaceResponse(BaseModel):
    id: int
    user_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    last_accessed_at: Optional[datetime] = None
    tabs: List[TabResponse] = []

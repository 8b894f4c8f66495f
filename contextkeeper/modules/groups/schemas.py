from pydantic import BaseModel
from typing import Optional
from datetime import datetime

DEFAULT_GROUP_COLOR = "#3b82f6"


class GroupCreate(BaseModel):
    name: str
    color: Optional[str] = None


class GroupResponse(BaseModel):
    id: int
    user_id: str
    name: str
    color: str
    created_at: datetime

from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Optional


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: Optional[EmailStr] = None
    points: int = 0
    is_admin: bool = False
    is_suspended: bool = False
    last_claimed: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return not self.is_suspended

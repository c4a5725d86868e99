from pydantic import BaseModel
from typing import Optional

class AdminUser(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None

"""
Identity models — who is on the other end of a connection.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

ROLES = ("FOUNDER", "INVESTOR", "ADMIN")


class Identity(BaseModel):
    """Claims extracted from a validated bearer token."""
    id: int
    role: str
    name: str = ""
    email: Optional[str] = None
    expires_at: Optional[datetime] = None

    model_config = {"frozen": True}

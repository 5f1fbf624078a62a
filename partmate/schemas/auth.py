from typing import Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionRead(BaseModel):
    user_id: str
    email: Optional[str] = None
    access_token: str

from typing import List, Optional

from pydantic import BaseModel, Field

from partmate.schemas.part import DashboardStats, Part


class Notice(BaseModel):
    level: str
    message: str
    status_code: int = Field(default=200, exclude=True)
    part: Optional[Part] = None
    parts: Optional[List[Part]] = None
    stats: Optional[DashboardStats] = None

    @property
    def ok(self) -> bool:
        return self.level == "success"

    @classmethod
    def success(cls, message, **payload):
        return cls(level="success", message=message, **payload)

    @classmethod
    def error(cls, message, status_code=400, **payload):
        return cls(level="error", message=message, status_code=status_code, **payload)

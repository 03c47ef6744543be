from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class AppNotification(BaseModel):
    id: str
    recipient: str = Field(min_length=1)
    message: str
    severity: Severity
    created_at: datetime
    read: bool = False
    request_id: Optional[str] = None
    version: int = 0

    def __repr__(self) -> str:
        return f"<AppNotification {self.severity.value} to {self.recipient}>"

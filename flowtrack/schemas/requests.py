"""Sales request records.

A request is stored as one document: its immutable facts, the current
status and the append-only history of workflow actions.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from flowtrack.core.rbac.roles import Role
from flowtrack.core.workflow.states import FULFILLMENT_STATUSES, HistoryAction, RequestStatus

_REF_SEPARATORS = re.compile(r"[,;\n]+")


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class HistoryEvent(BaseModel):
    """One audit entry; never modified once appended."""

    model_config = ConfigDict(frozen=True)

    action: HistoryAction
    timestamp: datetime
    actor: Role
    note: Optional[str] = None


class Enrichment(BaseModel):
    """Advisory risk annotation. Accepts camelCase keys from the scoring service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    summary: str
    recommendation: str

    @field_validator("risk_score", mode="before")
    @classmethod
    def _round_score(cls, value):
        if isinstance(value, float):
            return round(value)
        return value


class Fulfillment(BaseModel):
    shipment_refs: List[str] = Field(min_length=1)
    remarks: str = ""
    submitted_at: datetime


def parse_shipment_refs(value: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize shipment references to a list of non-blank strings.

    A single string is split on commas, semicolons and newlines. Items
    of an iterable that are not strings, such as None, are dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        parts = _REF_SEPARATORS.split(value)
    else:
        parts = [part for part in value if isinstance(part, str)]
    return [part.strip() for part in parts if part.strip()]


class RequestFacts(BaseModel):
    """Facts captured at submission; immutable afterwards."""

    model_config = ConfigDict(str_strip_whitespace=True)

    reference_code: str = Field(min_length=1, max_length=100)
    customer_name: str = Field(min_length=1, max_length=255)
    territory: str = Field(min_length=1, max_length=255)
    weight: str = Field(min_length=1, max_length=100)
    destination: str = Field(min_length=1, max_length=255)
    requested_price: float = Field(ge=0, allow_inf_nan=False)
    submitter_email: EmailStr


class SalesRequest(RequestFacts):
    """The aggregate root of the workflow."""

    id: str
    created_by: str = Field(min_length=1)
    created_at: datetime
    updated_at: datetime

    status: RequestStatus
    rejection_reason: Optional[str] = None
    enrichment: Optional[Enrichment] = None
    fulfillment: Optional[Fulfillment] = None

    history: List[HistoryEvent] = Field(min_length=1)

    # Managed by the store
    version: int = 0

    @model_validator(mode="after")
    def _check_invariants(self) -> "SalesRequest":
        is_rejected = self.status == RequestStatus.REJECTED
        if is_rejected != (self.rejection_reason is not None):
            raise ValueError("rejection_reason must be set exactly when status is Rejected")
        if self.fulfillment is not None and self.status not in FULFILLMENT_STATUSES:
            raise ValueError(f"fulfillment is not allowed in status {self.status.value}")
        return self

    def facts(self) -> RequestFacts:
        return RequestFacts.model_validate(self.model_dump(include=set(RequestFacts.model_fields)))

    @property
    def last_event(self) -> HistoryEvent:
        return self.history[-1]

    def __repr__(self) -> str:
        return f"<SalesRequest {self.reference_code} [{self.status.value}]>"


class DashboardStats(BaseModel):
    total_requests: int = 0
    pending: int = 0
    approved: int = 0
    completed: int = 0
    rejected: int = 0
    pending_value: float = 0.0
    approved_value: float = 0.0

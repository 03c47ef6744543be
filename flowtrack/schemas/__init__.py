"""Record shapes stored in FlowTrack tables."""

from flowtrack.schemas.requests import (
    DashboardStats,
    Enrichment,
    Fulfillment,
    HistoryEvent,
    RequestFacts,
    RiskLevel,
    SalesRequest,
    parse_shipment_refs,
)
from flowtrack.schemas.users import RoleLabel, User, UserInput
from flowtrack.schemas.notifications import AppNotification, Severity

__all__ = [
    "DashboardStats",
    "Enrichment",
    "Fulfillment",
    "HistoryEvent",
    "RequestFacts",
    "RiskLevel",
    "SalesRequest",
    "parse_shipment_refs",
    "RoleLabel",
    "User",
    "UserInput",
    "AppNotification",
    "Severity",
]

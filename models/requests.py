# models/requests.py

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.enums import ReservationStatus, VisitStatus


class ApiModel(BaseModel):
    """Rows come in snake_case from Postgres, JSON goes out in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# -----------------------------------------------------
# Catalog / identity records (read-only here)
# -----------------------------------------------------
class Unit(ApiModel):
    id: str
    property_id: str
    block: Optional[str] = None
    identifier: str
    is_available: bool


class UserProfile(ApiModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: str = "client"
    documents: Dict[str, Any] = Field(default_factory=dict)


# -----------------------------------------------------
# Request records
# -----------------------------------------------------
class VisitRequest(ApiModel):
    id: str
    client_id: str
    property_id: str
    unit_id: Optional[str] = None
    requested_slots: List[datetime] = Field(default_factory=list)
    scheduled_slot: Optional[datetime] = None
    status: VisitStatus
    client_msg: Optional[str] = None
    agent_msg: Optional[str] = None
    assigned_agent_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReservationRequest(ApiModel):
    id: str
    client_id: str
    property_id: str
    unit_id: str
    status: ReservationStatus
    client_msg: Optional[str] = None
    agent_msg: Optional[str] = None
    assigned_agent_id: Optional[str] = None
    transaction_docs: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# -----------------------------------------------------
# Intake payloads (storefront sends whole objects, we only keep ids)
# -----------------------------------------------------
class TargetRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None


class VisitRequestCreate(ApiModel):
    requested_slots: List[str] = Field(default_factory=list)
    property_ref: Optional[TargetRef] = Field(None, alias="property")
    unit_ref: Optional[TargetRef] = Field(None, alias="unit")
    property_id: Optional[str] = None
    unit_id: Optional[str] = None

    def target_ids(self):
        property_id = self.property_id or (self.property_ref.id if self.property_ref else None)
        unit_id = self.unit_id or (self.unit_ref.id if self.unit_ref else None)
        return property_id, unit_id


class ReservationRequestCreate(ApiModel):
    property_ref: Optional[TargetRef] = Field(None, alias="property")
    unit_ref: Optional[TargetRef] = Field(None, alias="unit")
    property_id: Optional[str] = None
    unit_id: Optional[str] = None
    client_msg: Optional[str] = None

    def target_ids(self):
        property_id = self.property_id or (self.property_ref.id if self.property_ref else None)
        unit_id = self.unit_id or (self.unit_ref.id if self.unit_ref else None)
        return property_id, unit_id


# -----------------------------------------------------
# Admin action payloads
# -----------------------------------------------------
class VisitActionBody(ApiModel):
    """{action: "approve", scheduledSlot, agentId, agentMsg?} or {action: "deny", clientMsg, agentMsg?}"""

    action: str
    scheduled_slot: Optional[str] = None
    agent_id: Optional[str] = None
    agent_msg: Optional[str] = None
    client_msg: Optional[str] = None


class ReservationActionBody(ApiModel):
    """action is one of approve | deny | complete | cancel."""

    action: str
    agent_id: Optional[str] = None
    agent_msg: Optional[str] = None
    client_msg: Optional[str] = None


# -----------------------------------------------------
# Listing responses
# -----------------------------------------------------
class ClientRequestPage(ApiModel):
    requests: List[Dict[str, Any]]
    next_cursor: Optional[int] = None


class AdminRequestPage(ApiModel):
    requests: List[Dict[str, Any]]
    total: int
    total_pages: int

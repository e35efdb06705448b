from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# REQUEST KIND
# -----------------------------------------------------
class RequestKind(BaseStrEnum):
    """Which request table a call targets (matches the ?type= query value)."""

    visits = "visits"
    reservations = "reservations"

    @property
    def table(self) -> str:
        return "visit_requests" if self is RequestKind.visits else "reservation_requests"


# -----------------------------------------------------
# VISIT STATUS
# -----------------------------------------------------
class VisitStatus(BaseStrEnum):
    """Lifecycle of a visit request. approved and denied are terminal."""

    pending = "pending"
    approved = "approved"
    denied = "denied"


# -----------------------------------------------------
# RESERVATION STATUS
# -----------------------------------------------------
class ReservationStatus(BaseStrEnum):
    """Lifecycle of a reservation request."""

    pending = "pending"
    approved = "approved"
    denied = "denied"
    completed = "completed"
    cancelled = "cancelled"


# Statuses that count against the one-live-request-per-target rule
LIVE_STATUSES = ("pending", "approved")


# -----------------------------------------------------
# USER ROLE
# -----------------------------------------------------
class UserRole(BaseStrEnum):
    client = "client"
    agent = "agent"
    admin = "admin"

# -------------------------
# Enums
# -------------------------
from .enums import (
    BaseStrEnum,
    RequestKind,
    VisitStatus,
    ReservationStatus,
    UserRole,
    LIVE_STATUSES,
)

# -------------------------
# Catalog / identity records
# -------------------------
from .requests import (
    Unit,
    UserProfile,
)

# -------------------------
# Request Models
# -------------------------
from .requests import (
    VisitRequest,
    ReservationRequest,
    VisitRequestCreate,
    ReservationRequestCreate,
    VisitActionBody,
    ReservationActionBody,
    ClientRequestPage,
    AdminRequestPage,
)

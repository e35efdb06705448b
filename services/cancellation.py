# services/cancellation.py

from core.errors import ErrorCode, RequestActionError
from core.logging_config import get_logger
from core.request_store import RequestStore
from models.enums import RequestKind
from services.transitions import parse_status

logger = get_logger("cancellation")

ONLY_PENDING = "Only pending requests can be canceled"


class ClientCancellationService:
    """Lets a client withdraw (hard-delete) their own request while it is still pending."""

    def __init__(self, store: RequestStore):
        self.store = store

    def _check(self, kind: RequestKind, request_id: str, client_id: str):
        row = self.store.get_request(kind, request_id)
        if not row:
            raise RequestActionError(ErrorCode.NOT_FOUND, "Request not found")
        if parse_status(kind, row["status"]).value != "pending":
            raise RequestActionError(ErrorCode.INVALID_STATUS, ONLY_PENDING)
        if row.get("client_id") != client_id:
            logger.warning(f"User {client_id} tried to cancel {kind.value} request {request_id} they do not own")
            raise RequestActionError(ErrorCode.FORBIDDEN, "Forbidden")

    def cancel_own_request(self, client_id: str, request_id: str, kind: RequestKind) -> None:
        self._check(kind, request_id, client_id)

        # Delete is conditional on (owner, pending); an admin decision landing
        # in between leaves the row alone and we report why.
        if not self.store.delete_pending(kind, request_id, client_id):
            self._check(kind, request_id, client_id)
            raise RequestActionError(ErrorCode.INVALID_STATUS, ONLY_PENDING)

        logger.info(f"Client {client_id} withdrew {kind.value} request {request_id}")

# core/request_store.py

"""
Supabase-backed persistence for visit and reservation requests.

The store is handed an explicit client (see dependencies.services.get_request_store)
so services never reach for a global handle. All PostgREST failures surface as
StoreError. Business outcomes (no row matched, duplicate, unit taken) are
returned as values and the services decide what they mean.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from datetime import datetime, timezone

from supabase import Client

from core.errors import StoreError, extract_supabase_error, supabase_error_code
from core.logging_config import get_logger
from models.enums import LIVE_STATUSES, RequestKind

logger = get_logger("store")

UNIQUE_VIOLATION = "23505"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RequestStore:
    def __init__(self, client: Client):
        if client is None:
            raise StoreError("init", "Supabase client not configured")
        self.client = client

    # ---------------------------------------------------------
    # Internal
    # ---------------------------------------------------------
    def _run(self, operation: str, call: Callable[[], Any]):
        try:
            return call()
        except StoreError:
            raise
        except Exception as e:
            detail = extract_supabase_error(e)
            logger.error(f"{operation} failed: {detail}", exc_info=True)
            raise StoreError(operation, detail) from e

    def _first(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        result = self._run(
            f"select {table}",
            lambda: self.client.table(table).select("*").eq("id", row_id).limit(1).execute(),
        )
        return result.data[0] if result.data else None

    # ---------------------------------------------------------
    # Catalog / identity lookups
    # ---------------------------------------------------------
    def get_unit(self, unit_id: str) -> Optional[Dict[str, Any]]:
        return self._first("units", unit_id)

    def get_property(self, property_id: str) -> Optional[Dict[str, Any]]:
        return self._first("properties", property_id)

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._first("users", user_id)

    def list_admin_emails(self) -> List[str]:
        result = self._run(
            "list admin emails",
            lambda: self.client.table("users").select("email").eq("role", "admin").execute(),
        )
        return [row["email"] for row in (result.data or []) if row.get("email")]

    # ---------------------------------------------------------
    # Request reads
    # ---------------------------------------------------------
    def get_request(self, kind: RequestKind, request_id: str) -> Optional[Dict[str, Any]]:
        return self._first(kind.table, request_id)

    def count_live_visits(self, client_id: str, property_id: str) -> int:
        result = self._run(
            "count live visit requests",
            lambda: (
                self.client.table("visit_requests")
                .select("id", count="exact")
                .eq("client_id", client_id)
                .eq("property_id", property_id)
                .in_("status", list(LIVE_STATUSES))
                .execute()
            ),
        )
        return result.count or 0

    def count_live_reservations(self, client_id: str, unit_id: str) -> int:
        result = self._run(
            "count live reservation requests",
            lambda: (
                self.client.table("reservation_requests")
                .select("id", count="exact")
                .eq("client_id", client_id)
                .eq("unit_id", unit_id)
                .in_("status", list(LIVE_STATUSES))
                .execute()
            ),
        )
        return result.count or 0

    def list_client_requests(
        self, kind: RequestKind, client_id: str, offset: int, limit: int
    ) -> List[Dict[str, Any]]:
        result = self._run(
            f"list {kind.value} for client",
            lambda: (
                self.client.table(kind.table)
                .select("*")
                .eq("client_id", client_id)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            ),
        )
        return result.data or []

    def list_requests(
        self, kind: RequestKind, status: Optional[str], offset: int, limit: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        def call():
            query = self.client.table(kind.table).select("*", count="exact")
            if status:
                query = query.eq("status", status)
            return query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()

        result = self._run(f"list {kind.value}", call)
        return result.data or [], result.count or 0

    def approved_visit_slots(self, property_id: str, unit_id: str) -> List[str]:
        result = self._run(
            "list approved visit slots",
            lambda: (
                self.client.table("visit_requests")
                .select("scheduled_slot")
                .eq("property_id", property_id)
                .eq("unit_id", unit_id)
                .eq("status", "approved")
                .not_.is_("scheduled_slot", "null")
                .execute()
            ),
        )
        return [str(row["scheduled_slot"]) for row in (result.data or []) if row.get("scheduled_slot")]

    # ---------------------------------------------------------
    # Request writes
    # ---------------------------------------------------------
    def insert_visit(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Insert a pending visit request.
        Returns None when the live-request unique index rejects the row.
        """
        row = {**data, "status": "pending"}
        try:
            result = self.client.table("visit_requests").insert(row).execute()
        except Exception as e:
            if supabase_error_code(e) == UNIQUE_VIOLATION:
                logger.info(
                    f"Live visit request already exists for client {data.get('client_id')} "
                    f"and property {data.get('property_id')}"
                )
                return None
            detail = extract_supabase_error(e)
            logger.error(f"insert visit_requests failed: {detail}", exc_info=True)
            raise StoreError("insert visit_requests", detail) from e
        return result.data[0] if result.data else None

    def create_reservation(
        self,
        client_id: str,
        property_id: str,
        unit_id: str,
        client_msg: Optional[str],
        transaction_docs: Dict[str, Any],
    ) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Dedup + availability check + insert, atomically (create_reservation_request).
        Returns (outcome, row): created | duplicate | unit_unavailable | unit_not_found.
        """
        result = self._run(
            "rpc create_reservation_request",
            lambda: self.client.rpc(
                "create_reservation_request",
                {
                    "p_client_id": client_id,
                    "p_property_id": property_id,
                    "p_unit_id": unit_id,
                    "p_client_msg": client_msg,
                    "p_transaction_docs": transaction_docs or {},
                },
            ).execute(),
        )
        payload = result.data or {}
        return payload.get("outcome", "unknown"), payload.get("request")

    def approve_reservation(
        self,
        request_id: str,
        agent_id: Optional[str],
        client_msg: Optional[str],
        agent_msg: Optional[str],
    ) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Pending re-check + unit flip + status write, atomically (approve_reservation_request).
        Returns (outcome, row): approved | not_found | invalid_status | unit_unavailable.
        """
        result = self._run(
            "rpc approve_reservation_request",
            lambda: self.client.rpc(
                "approve_reservation_request",
                {
                    "p_request_id": request_id,
                    "p_agent_id": agent_id,
                    "p_client_msg": client_msg,
                    "p_agent_msg": agent_msg,
                },
            ).execute(),
        )
        payload = result.data or {}
        return payload.get("outcome", "unknown"), payload.get("request")

    def update_status(
        self,
        kind: RequestKind,
        request_id: str,
        expected: Iterable[str],
        changes: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        UPDATE ... WHERE id = request_id AND status IN expected.
        Returns the updated row, or None when the row was missing or had moved on.
        """
        data = {**changes, "updated_at": utc_now_iso()}
        result = self._run(
            f"update {kind.table}",
            lambda: (
                self.client.table(kind.table)
                .update(data)
                .eq("id", request_id)
                .in_("status", [str(s) for s in expected])
                .execute()
            ),
        )
        return result.data[0] if result.data else None

    def delete_pending(self, kind: RequestKind, request_id: str, client_id: str) -> bool:
        """Hard-delete a request only if it is still pending and owned by client_id."""
        result = self._run(
            f"delete {kind.table}",
            lambda: (
                self.client.table(kind.table)
                .delete()
                .eq("id", request_id)
                .eq("client_id", client_id)
                .eq("status", "pending")
                .execute()
            ),
        )
        return bool(result.data)

# dependencies/services.py

"""
FastAPI providers for the store handle, the notifier and the services.

Tests swap get_request_store / get_notifier through app.dependency_overrides.
"""

from fastapi import Depends

from core.errors import StoreError
from core.notifications import NotificationDispatcher
from core.request_store import RequestStore
from core.supabase_client import get_supabase_client
from dependencies.auth import CurrentUser, require_admin
from services.admin_actions import AdminTransitionService
from services.cancellation import ClientCancellationService
from services.intake import RequestIntakeService
from services.notices import RequestNotifier


def build_request_store() -> RequestStore:
    client = get_supabase_client()
    if client is None:
        raise StoreError("connect", "Supabase client not configured")
    return RequestStore(client)


# One dispatcher per process; started by main's startup hook
dispatcher = NotificationDispatcher()
notifier = RequestNotifier(dispatcher, build_request_store)


def get_request_store() -> RequestStore:
    return build_request_store()


def get_notifier() -> RequestNotifier:
    return notifier


def get_intake_service(
    store: RequestStore = Depends(get_request_store),
    request_notifier=Depends(get_notifier),
) -> RequestIntakeService:
    return RequestIntakeService(store, request_notifier)


def get_admin_service(
    admin: CurrentUser = Depends(require_admin),
    store: RequestStore = Depends(get_request_store),
    request_notifier=Depends(get_notifier),
) -> AdminTransitionService:
    return AdminTransitionService(store, request_notifier, actor_id=admin.id)


def get_cancellation_service(
    store: RequestStore = Depends(get_request_store),
) -> ClientCancellationService:
    return ClientCancellationService(store)

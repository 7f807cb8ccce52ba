"""
Main Orchestrator for the ACCA client core

This module ties together all the components a host UI shell needs:
1. Session lifecycle (token storage → API client → auth → session manager)
2. Reconciliation (one ReconciliationSession per account screen)

DESIGN DECISION: Components are constructed here and handed to the
shell explicitly. Nothing is a module-level singleton, so tests and
multiple shells can each build their own set.
"""

from typing import Optional

import httpx
import structlog

from acca_client.audit import AuditLogger, configure_logging
from acca_client.config import get_settings
from acca_client.reconcile import ReconciliationSession
from acca_client.services.api import ApiClient
from acca_client.services.auth import AuthService
from acca_client.services.finance import (
    AccountService,
    CategoryService,
    TransactionService,
)
from acca_client.services.storage import (
    AuditStorageInterface,
    FileTokenStorage,
    InMemoryAuditStorage,
    InMemoryTokenStorage,
    TokenStorageInterface,
)
from acca_client.session import Notifier, SessionManager


logger = structlog.get_logger(__name__)


class AppComponents:
    """
    Everything a running app needs, wired together.

    Close with `aclose()` when the shell shuts down.
    """

    def __init__(
        self,
        api: ApiClient,
        token_storage: TokenStorageInterface,
        auth: AuthService,
        session: SessionManager,
        audit_logger: AuditLogger,
        audit_storage: Optional[AuditStorageInterface] = None,
    ):
        self.api = api
        self.token_storage = token_storage
        self.auth = auth
        self.session = session
        self.audit_logger = audit_logger
        self.audit_storage = audit_storage

        self.accounts = AccountService(api)
        self.transactions = TransactionService(api)
        self.categories = CategoryService(api)

    def reconciliation_for(self, account_id: int) -> ReconciliationSession:
        """New reconciliation working list for one account."""
        return ReconciliationSession(
            account_id=account_id,
            transaction_service=self.transactions,
            account_service=self.accounts,
            category_service=self.categories,
            audit_logger=self.audit_logger,
        )

    async def aclose(self) -> None:
        await self.session.aclose()
        await self.api.aclose()


def create_app_components(
    persist_token: bool = True,
    notifier: Optional[Notifier] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    auto_validate: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        persist_token: Keep the token in the credentials file between
                       launches. Set to False for tests and throwaway shells.
        notifier: Callback the session manager uses to surface messages
        transport: httpx transport override (e.g. MockTransport in tests)
        auto_validate: Run the background session validation timer

    Returns:
        AppComponents
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    token_storage: TokenStorageInterface
    if persist_token:
        token_storage = FileTokenStorage()
    else:
        token_storage = InMemoryTokenStorage()

    audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)

    api = ApiClient(token_storage, settings=settings.api, transport=transport)
    auth = AuthService(api)
    session = SessionManager(
        auth_service=auth,
        token_storage=token_storage,
        audit_logger=audit_logger,
        notifier=notifier,
        settings=settings.session,
        auto_validate=auto_validate,
    )

    logger.info(
        "app_components_created",
        environment=settings.app.app_environment,
        base_url=settings.api.base_url,
        persist_token=persist_token,
    )

    return AppComponents(
        api=api,
        token_storage=token_storage,
        auth=auth,
        session=session,
        audit_logger=audit_logger,
        audit_storage=audit_storage,
    )

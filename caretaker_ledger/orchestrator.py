"""
Application Wiring for Caretaker Ledger

This module ties the components together:
1. App startup (settings → cache → optional REST backend → user directory → auth)
2. Family session (session → family storage → migrations → backend pull → services)

DESIGN DECISION: Everything family-scoped is built per session. A
FamilyContext only ever sees the family of the session it was opened
with; logging out and in as another family builds a new context.

Without backend settings the app runs cache-only: users live in the
local cache and nothing is mirrored.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import httpx
import structlog

from caretaker_ledger.audit import ActionLogger, configure_log_level
from caretaker_ledger.auth import (
    AuthService,
    LocalUserDirectory,
    NotAuthenticatedError,
    RestUserDirectory,
    SessionStore,
    UserDirectoryInterface,
)
from caretaker_ledger.config import Settings, get_settings
from caretaker_ledger.household import HouseholdSettingsService
from caretaker_ledger.ledgers import ElderLedgerService, ShevahCoverageService, WorklogService
from caretaker_ledger.models import FamilySession
from caretaker_ledger.payslips import PayslipService
from caretaker_ledger.queries import OpenTaskQuery
from caretaker_ledger.services.storage import (
    FamilyStorage,
    LocalCache,
    PostgrestClient,
    RestKeyValueBackend,
    run_migrations,
)

logger = structlog.get_logger(__name__)


@dataclass
class FamilyContext:
    """Every service bound to one family session."""

    session: FamilySession
    storage: FamilyStorage
    actions: ActionLogger
    household: HouseholdSettingsService
    worklog: WorklogService
    shevah: ShevahCoverageService
    elder: ElderLedgerService
    payslips: PayslipService
    open_tasks: OpenTaskQuery


class CaretakerApp:
    """
    Application-level components, created once.

    Example:
        app = create_app_components()
        await app.auth.login("dana", "secret")
        context = await app.open_session()
        context.worklog.add_activity("shabbat", "2024-03-02")
    """

    def __init__(
        self,
        settings: Settings,
        cache: LocalCache,
        backend: Optional[RestKeyValueBackend],
        directory: UserDirectoryInterface,
        on_quota_exceeded: Optional[Callable[[str], None]] = None,
    ):
        self.settings = settings
        self.cache = cache
        self.backend = backend
        self.directory = directory
        self._on_quota_exceeded = on_quota_exceeded
        self.auth = AuthService(
            directory,
            SessionStore(cache),
            storage_factory=self.storage_for,
        )

    def storage_for(self, session: FamilySession) -> FamilyStorage:
        return FamilyStorage(
            self.cache,
            self.backend,
            session,
            namespace=self.settings.cache.namespace,
            on_quota_exceeded=self._on_quota_exceeded,
        )

    def build_context(self, session: FamilySession) -> FamilyContext:
        """Services of one session, without touching the backend."""
        storage = self.storage_for(session)
        actions = ActionLogger(storage, session, limit=self.settings.app.action_log_limit)
        household = HouseholdSettingsService(storage, session)
        worklog = WorklogService(storage, actions)
        shevah = ShevahCoverageService(storage)
        payslips = PayslipService(storage, household, worklog, shevah, session)
        return FamilyContext(
            session=session,
            storage=storage,
            actions=actions,
            household=household,
            worklog=worklog,
            shevah=shevah,
            elder=ElderLedgerService(storage),
            payslips=payslips,
            open_tasks=OpenTaskQuery(storage, household, worklog, payslips),
        )

    async def open_session(self) -> FamilyContext:
        """
        Context of the logged-in family.

        Pulls the family's data from the backend, migrates it and seeds
        missing defaults.

        Raises:
            NotAuthenticatedError: Nobody is logged in, or the session expired
        """
        session = self.auth.current_session()
        if session is None:
            raise NotAuthenticatedError("Not logged in")

        context = self.build_context(session)
        if context.storage.has_backend:
            await context.storage.sync_all_from_backend()

        version = run_migrations(context.storage)
        context.household.initialize_defaults()

        logger.info(
            "family_session_opened",
            family_id=session.family_id,
            role=session.role.value,
            schema_version=version,
        )
        return context

    async def close(self) -> None:
        if self.backend is not None:
            await self.backend.close()
        await self.directory.close()


def create_app_components(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    on_quota_exceeded: Optional[Callable[[str], None]] = None,
) -> CaretakerApp:
    """
    Factory function to create all application components.

    Args:
        settings: Configuration (default: environment)
        transport: httpx transport for the REST client, for tests
        on_quota_exceeded: Called with an alert message when a cache write hits the quota

    Returns:
        CaretakerApp, cache-only when the backend is not configured
    """
    settings = settings or get_settings()
    configure_log_level(settings.app.debug_mode)

    cache = LocalCache(
        quota_bytes=settings.cache.quota_bytes,
        file_path=settings.cache.file_path,
        enabled=settings.cache.enabled,
    )

    backend = None
    if settings.backend.is_configured:
        client = PostgrestClient.from_settings(settings.backend, transport=transport)
        backend = RestKeyValueBackend(client, settings.backend.family_data_table)
        directory = RestUserDirectory(client, settings.backend.users_table)
    else:
        logger.warning("backend_not_configured", mode="cache_only")
        directory = LocalUserDirectory(cache)

    return CaretakerApp(settings, cache, backend, directory, on_quota_exceeded)

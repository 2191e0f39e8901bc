"""
Authentication Service

State machine over the session record:

    (no session) --login/register--> logged in --logout/expiry--> (no session)

DESIGN DECISION: Expiry is checked lazily. There is no timer; the next
is_authenticated() call on an expired session clears it.

Registration always creates a new family whose first user is an admin.
Further users are added by an admin of that family.
"""

import secrets
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

import structlog

from caretaker_ledger.auth.directory import UserDirectoryInterface
from caretaker_ledger.auth.errors import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    RegistrationValidationError,
)
from caretaker_ledger.auth.passwords import hash_password, is_legacy_hash, verify_password
from caretaker_ledger.auth.roles import require_admin
from caretaker_ledger.auth.session import SessionStore
from caretaker_ledger.config import get_settings
from caretaker_ledger.contracts import parse_date
from caretaker_ledger.models import (
    FamilyAccount,
    FamilySession,
    RecordId,
    User,
    UserRole,
)
from caretaker_ledger.services.storage import FamilyStorage, StorageError, keys
from caretaker_ledger.validation import (
    CredentialValidator,
    RegistrationForm,
    parse_positive_amount,
)

logger = structlog.get_logger(__name__)

FAMILY_ID_ALPHABET = string.ascii_lowercase + string.digits

StorageFactory = Callable[[FamilySession], FamilyStorage]


def generate_family_id(now_ms: Optional[int] = None) -> str:
    """family_<epoch ms>_<9 random base-36 characters>"""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(FAMILY_ID_ALPHABET) for _ in range(9))
    return f"family_{now_ms}_{suffix}"


class AuthService:
    """
    Login, registration and family user management.

    Example:
        auth = AuthService(directory, SessionStore(cache))
        session = await auth.login("dana", "secret")
    """

    def __init__(
        self,
        directory: UserDirectoryInterface,
        sessions: SessionStore,
        validator: Optional[CredentialValidator] = None,
        storage_factory: Optional[StorageFactory] = None,
        session_max_age: Optional[timedelta] = None,
    ):
        """
        Args:
            directory: Where user accounts live
            sessions: Where the current session is kept
            validator: Form validator (default: configured minimum length)
            storage_factory: Builds family storage for a new session, used
                to store the contract data entered at registration
            session_max_age: Session lifetime (default: configured hours)
        """
        self._directory = directory
        self._sessions = sessions
        self._validator = validator or CredentialValidator()
        self._storage_factory = storage_factory
        self._max_age = session_max_age or timedelta(
            hours=get_settings().auth.session_max_age_hours
        )

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def _start_session(self, user: User) -> FamilySession:
        session = FamilySession(
            username=user.username,
            family_id=user.family_id,
            role=user.role,
            logged_in=True,
            timestamp=datetime.now(timezone.utc),
            token=secrets.token_hex(16),
        )
        self._sessions.save(session)
        return session

    async def login(self, username: str, password: str) -> FamilySession:
        """
        Log in and persist the session.

        Raises:
            InvalidCredentialsError: Unknown user or wrong password. The
                stored session is left untouched.
        """
        user = await self._directory.find_by_username((username or "").strip())
        if user is None or not verify_password(password, user.password_hash):
            logger.info("login_failed", username=username)
            raise InvalidCredentialsError()

        if is_legacy_hash(user.password_hash):
            await self._upgrade_password(user, password)

        session = self._start_session(user)
        logger.info("login_succeeded", username=user.username, family_id=user.family_id)
        return session

    async def _upgrade_password(self, user: User, password: str) -> None:
        try:
            await self._directory.update_password(user.id, hash_password(password))
        except StorageError as e:
            logger.warning("password_upgrade_failed", username=user.username, error=str(e))

    def logout(self) -> None:
        session = self._sessions.load()
        self._sessions.clear()
        if session:
            logger.info("logout", username=session.username)

    def is_authenticated(self, now: Optional[datetime] = None) -> bool:
        """True while a logged-in session is younger than the max age."""
        session = self._sessions.load()
        if session is None:
            return False
        now = now or datetime.now(timezone.utc)
        if session.is_expired(now, self._max_age):
            logger.info("session_expired", username=session.username)
            self._sessions.clear()
            return False
        return session.logged_in is True

    def current_session(self, now: Optional[datetime] = None) -> Optional[FamilySession]:
        if not self.is_authenticated(now):
            return None
        return self._sessions.load()

    def require_session(self, now: Optional[datetime] = None) -> FamilySession:
        session = self.current_session(now)
        if session is None:
            raise NotAuthenticatedError()
        return session

    def is_admin(self) -> bool:
        session = self.current_session()
        return session is not None and session.is_admin

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def register(self, form: RegistrationForm) -> tuple[FamilySession, FamilyAccount]:
        """
        Create a new family with its first (admin) user, and log in.

        Raises:
            RegistrationValidationError: The form is invalid (checked before
                any storage or network call)
            DuplicateUsernameError: The username is taken
        """
        result = self._validator.validate_registration(form)
        if not result.is_valid:
            raise RegistrationValidationError(result)

        username = form.username.strip()
        if await self._directory.find_by_username(username) is not None:
            raise DuplicateUsernameError(username)

        account = FamilyAccount(
            family_id=generate_family_id(),
            name=form.name,
            contract_start_date=parse_date(form.contract_start_date),
            monthly_base_amount=parse_positive_amount(form.monthly_base_amount),
        )
        user = await self._directory.create(User(
            username=username,
            password_hash=hash_password(form.password),
            name=form.name or username,
            family_id=account.family_id,
            role=UserRole.ADMIN,
        ))

        session = self._start_session(user)

        if self._storage_factory is not None:
            storage = self._storage_factory(session)
            storage.set(keys.CONTRACT_START_DATE, account.contract_start_date.isoformat())
            storage.set(keys.MONTHLY_BASE_AMOUNT, account.monthly_base_amount)

        logger.info("family_registered", username=username, family_id=account.family_id)
        return session, account

    # -------------------------------------------------------------------------
    # Family user management (admin only)
    # -------------------------------------------------------------------------

    async def get_family_users(self) -> list[User]:
        session = require_admin(self.current_session(), "list users")
        return await self._directory.list_family(session.family_id)

    async def add_family_user(
        self,
        username: str,
        password: str,
        name: Optional[str] = None,
        role: Union[str, UserRole] = UserRole.CARETAKER,
    ) -> User:
        """Add a user to the admin's own family."""
        session = require_admin(self.current_session(), "add users")

        result = self._validator.validate_new_user(username, password, role)
        if not result.is_valid:
            raise RegistrationValidationError(result)

        username = username.strip()
        if await self._directory.find_by_username(username) is not None:
            raise DuplicateUsernameError(username)

        user = await self._directory.create(User(
            username=username,
            password_hash=hash_password(password),
            name=name or username,
            family_id=session.family_id,
            role=UserRole(role),
        ))
        logger.info(
            "family_user_added",
            by=session.username,
            username=username,
            role=user.role.value,
            family_id=session.family_id,
        )
        return user

    async def delete_family_user(self, user_id: RecordId) -> bool:
        """Delete a user of the admin's own family. Returns False if none matched."""
        session = require_admin(self.current_session(), "delete users")
        deleted = await self._directory.delete(user_id, session.family_id)
        logger.info(
            "family_user_deleted",
            by=session.username,
            user_id=str(user_id),
            deleted=deleted,
        )
        return deleted

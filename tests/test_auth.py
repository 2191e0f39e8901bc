"""Tests for login, registration, sessions and the role gate."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from caretaker_ledger.auth import (
    AuthService,
    DuplicateUsernameError,
    InvalidCredentialsError,
    LocalUserDirectory,
    NotAuthenticatedError,
    PermissionDeniedError,
    RegistrationValidationError,
    SessionStore,
    allowed_screens,
    can_access,
    can_edit_financials,
    generate_family_id,
    hash_password,
    require_admin,
    verify_password,
)
from caretaker_ledger.auth.passwords import is_legacy_hash
from caretaker_ledger.models import FamilySession, Screen, User, UserRole
from caretaker_ledger.services.storage import FamilyStorage
from caretaker_ledger.validation import RegistrationForm


def registration(**overrides) -> RegistrationForm:
    data = {
        "name": "Cohen family",
        "username": "dana",
        "password": "secret1",
        "confirm_password": "secret1",
        "contract_start_date": "2024-01-15",
        "monthly_base_amount": "6250",
    }
    data.update(overrides)
    return RegistrationForm(**data)


@pytest.fixture
def directory(cache):
    return LocalUserDirectory(cache)


@pytest.fixture
def sessions(cache):
    return SessionStore(cache)


@pytest.fixture
def auth(cache, directory, sessions):
    return AuthService(
        directory,
        sessions,
        storage_factory=lambda session: FamilyStorage(cache, None, session),
    )


class TestPasswords:
    """Tests for password hashing."""

    def test_hash_and_verify(self):
        """Test a bcrypt round trip."""
        hashed = hash_password("secret1", rounds=4)
        assert hashed.startswith("$2b$")
        assert verify_password("secret1", hashed)
        assert not verify_password("secret2", hashed)

    def test_long_password_truncated_to_72_bytes(self):
        """Test that bytes past 72 are ignored, not rejected."""
        hashed = hash_password("a" * 100, rounds=4)
        assert verify_password("a" * 72 + "b" * 10, hashed)

    def test_legacy_plaintext(self):
        """Test that plaintext rows still verify."""
        assert is_legacy_hash("secret1")
        assert verify_password("secret1", "secret1")
        assert not verify_password("secret2", "secret1")
        assert not verify_password("secret1", None)


class TestRoles:
    """Tests for the role gate."""

    def test_caretaker_screens(self):
        """Test that caretakers see the worklog and payslips only."""
        assert allowed_screens(UserRole.CARETAKER) == {Screen.WORKLOG, Screen.PAYSLIPS}
        assert not can_access("caretaker", "settings")
        assert can_access("admin", Screen.USER_MANAGEMENT)

    def test_financial_editing(self):
        """Test that only admins edit monetary figures."""
        assert can_edit_financials("admin")
        assert not can_edit_financials("caretaker")

    def test_require_admin(self, admin_session, caretaker_session):
        """Test the admin gate."""
        assert require_admin(admin_session) is admin_session
        with pytest.raises(PermissionDeniedError, match="Only admins can delete users"):
            require_admin(caretaker_session, "delete users")
        with pytest.raises(NotAuthenticatedError):
            require_admin(None)


class TestFamilyId:
    """Tests for generated family ids."""

    def test_format(self):
        """Test family_<ms>_<9 base-36 characters>."""
        family_id = generate_family_id(now_ms=1700000000000)
        assert re.fullmatch(r"family_1700000000000_[a-z0-9]{9}", family_id)

    def test_unique(self):
        """Test that two ids of the same millisecond differ."""
        assert generate_family_id(1) != generate_family_id(1)


class TestRegistration:
    """Tests for family registration."""

    @pytest.mark.asyncio
    async def test_register_creates_admin_and_session(self, auth, cache, directory):
        """Test a successful registration."""
        session, account = await auth.register(registration())

        assert session.role == UserRole.ADMIN
        assert session.family_id == account.family_id
        assert account.monthly_base_amount == 6250
        assert auth.is_authenticated()

        user = await directory.find_by_username("dana")
        assert user.role == UserRole.ADMIN
        assert user.password_hash != "secret1"

        storage = FamilyStorage(cache, None, session)
        assert storage.get("contractStartDate") == "2024-01-15"
        assert storage.get("monthlyBaseAmount") == 6250

    @pytest.mark.asyncio
    async def test_password_mismatch(self, auth, directory):
        """Test that a mismatch stops registration before any write."""
        with pytest.raises(RegistrationValidationError, match="Passwords do not match"):
            await auth.register(registration(confirm_password="other"))
        assert await directory.find_by_username("dana") is None
        assert not auth.is_authenticated()

    @pytest.mark.asyncio
    async def test_missing_fields(self, auth):
        """Test the required fields message."""
        with pytest.raises(RegistrationValidationError, match="All fields are required"):
            await auth.register(registration(name=""))

    @pytest.mark.asyncio
    async def test_non_positive_base_amount(self, auth):
        """Test the monthly amount check."""
        with pytest.raises(RegistrationValidationError, match="valid positive number"):
            await auth.register(registration(monthly_base_amount="-5"))

    @pytest.mark.asyncio
    async def test_duplicate_username(self, auth):
        """Test that usernames are unique across families."""
        await auth.register(registration())
        auth.logout()
        with pytest.raises(DuplicateUsernameError, match="Username already exists"):
            await auth.register(registration(name="Levi family"))


class TestLogin:
    """Tests for login, logout and session expiry."""

    @pytest.mark.asyncio
    async def test_login_and_logout(self, auth):
        """Test the session lifecycle."""
        await auth.register(registration())
        auth.logout()
        assert not auth.is_authenticated()

        session = await auth.login("dana", "secret1")
        assert session.logged_in
        assert auth.is_admin()
        assert auth.require_session().username == "dana"

        auth.logout()
        assert auth.current_session() is None
        with pytest.raises(NotAuthenticatedError):
            auth.require_session()

    @pytest.mark.asyncio
    async def test_wrong_password_keeps_session(self, auth):
        """Test that a failed login leaves the current session alone."""
        session, _ = await auth.register(registration())
        with pytest.raises(InvalidCredentialsError, match="Invalid credentials"):
            await auth.login("dana", "wrong")
        assert auth.current_session().token == session.token

    @pytest.mark.asyncio
    async def test_unknown_user_same_error(self, auth):
        """Test that unknown users get the same error."""
        with pytest.raises(InvalidCredentialsError, match="Invalid credentials"):
            await auth.login("nobody", "secret1")

    @pytest.mark.asyncio
    async def test_legacy_password_upgraded(self, auth, directory):
        """Test that a plaintext password is rehashed on login."""
        await directory.create(User(username="old", password="plain1", family_id="family_1"))
        await auth.login("old", "plain1")
        user = await directory.find_by_username("old")
        assert not is_legacy_hash(user.password_hash)
        assert verify_password("plain1", user.password_hash)

    def test_expired_session_cleared(self, auth, sessions):
        """Test lazy expiry after 24 hours."""
        issued = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
        sessions.save(FamilySession(username="dana", family_id="family_1", timestamp=issued))

        assert auth.is_authenticated(now=issued + timedelta(hours=23))
        assert not auth.is_authenticated(now=issued + timedelta(hours=24))
        assert sessions.load() is None


class TestFamilyUsers:
    """Tests for user management by admins."""

    @pytest.mark.asyncio
    async def test_add_and_list_users(self, auth):
        """Test adding a caretaker to the family."""
        session, _ = await auth.register(registration())
        user = await auth.add_family_user("maria", "care1", name="Maria")
        assert user.role == UserRole.CARETAKER
        assert user.family_id == session.family_id
        assert {u.username for u in await auth.get_family_users()} == {"dana", "maria"}

    @pytest.mark.asyncio
    async def test_invalid_role_rejected(self, auth):
        """Test the role check of new users."""
        await auth.register(registration())
        with pytest.raises(RegistrationValidationError):
            await auth.add_family_user("maria", "care1", role="owner")

    @pytest.mark.asyncio
    async def test_caretaker_cannot_manage_users(self, auth):
        """Test that caretakers are refused."""
        await auth.register(registration())
        await auth.add_family_user("maria", "care1")
        auth.logout()
        await auth.login("maria", "care1")
        assert not auth.is_admin()
        with pytest.raises(PermissionDeniedError):
            await auth.add_family_user("eve", "care2")
        with pytest.raises(PermissionDeniedError):
            await auth.get_family_users()

    @pytest.mark.asyncio
    async def test_delete_only_in_own_family(self, auth, directory):
        """Test that an admin cannot delete another family's user."""
        stranger = await directory.create(User(
            username="stranger",
            password=hash_password("x1234", rounds=4),
            family_id="family_other",
        ))
        await auth.register(registration())
        assert await auth.delete_family_user(stranger.id) is False
        assert await directory.find_by_username("stranger") is not None

        maria = await auth.add_family_user("maria", "care1")
        assert await auth.delete_family_user(maria.id) is True
        assert await directory.find_by_username("maria") is None

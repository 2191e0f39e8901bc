"""
Role gate.

Admins see every screen. Caretakers see the worklog and their payslips,
and may view but not edit monetary figures.
"""

from typing import Optional, Union

from caretaker_ledger.auth.errors import NotAuthenticatedError, PermissionDeniedError
from caretaker_ledger.models import FamilySession, Screen, UserRole

CARETAKER_SCREENS = frozenset({Screen.WORKLOG, Screen.PAYSLIPS})

ROLE_SCREENS: dict[UserRole, frozenset[Screen]] = {
    UserRole.ADMIN: frozenset(Screen),
    UserRole.CARETAKER: CARETAKER_SCREENS,
}


def allowed_screens(role: Union[str, UserRole]) -> frozenset[Screen]:
    return ROLE_SCREENS[UserRole(role)]


def can_access(role: Union[str, UserRole], screen: Union[str, Screen]) -> bool:
    return Screen(screen) in allowed_screens(role)


def can_edit_financials(role: Union[str, UserRole]) -> bool:
    return UserRole(role) == UserRole.ADMIN


def require_admin(session: Optional[FamilySession], action: Optional[str] = None) -> FamilySession:
    """Raise unless the session belongs to a logged-in admin."""
    if session is None or not session.logged_in:
        raise NotAuthenticatedError()
    if not session.is_admin:
        message = f"Only admins can {action}" if action else "Only admins can perform this action"
        raise PermissionDeniedError(message)
    return session

"""Role checks for route handlers.

Roles live on the users row (admin, manager, clerk, customer,
travel_company). Reservation-level rules (ownership, what each role may
do to one reservation) belong to frontdesk.domain.access_policy; this
module only gates whole endpoints by role.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException

from frontdesk.api.auth import CurrentUser, get_current_user
from frontdesk.domain.access_policy import STAFF_ROLES, Role


def require_roles(*roles: Role | str) -> Callable[..., CurrentUser]:
    """Create a dependency that only lets the listed roles through.

    Usage:
        @router.post("/rooms")
        def endpoint(user: CurrentUser = Depends(require_roles(Role.ADMIN, Role.MANAGER))):
            ...
    """
    allowed = {Role(r).value for r in roles}
    if not allowed:
        raise ValueError("require_roles needs at least one role")

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return user

    return dependency


def require_staff() -> Callable[..., CurrentUser]:
    """Shortcut for require_roles(admin, manager, clerk)."""
    return require_roles(*STAFF_ROLES)

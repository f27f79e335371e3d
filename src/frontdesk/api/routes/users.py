"""User administration endpoints.

GET    /users         → list (admin)
POST   /users         → create (admin)
GET    /users/{id}    → admin or the user themself
PUT    /users/{id}    → admin: any field; self: name, email, phone, password
DELETE /users/{id}    → admin, never their own account

Password hashes are stored but never returned.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path
from psycopg2 import errors as pg_errors
from pydantic import BaseModel, ConfigDict, Field

from frontdesk.api.auth import CurrentUser, get_current_user
from frontdesk.api.rbac import require_roles
from frontdesk.domain.access_policy import Role
from frontdesk.domain.errors import ForbiddenError, NotFoundError, ValidationError
from frontdesk.infra.passwords import hash_password
from frontdesk.infra.repositories import users_repository
from frontdesk.observability.logging import get_logger
from frontdesk.observability.redaction import safe_log_context

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

_admin_only = require_roles(Role.ADMIN)

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_SELF_EDITABLE = frozenset({"name", "email", "phone", "password"})


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=_EMAIL_PATTERN, max_length=320)
    password: str | None = Field(None, min_length=6, max_length=128)
    phone: str | None = Field(None, max_length=40)
    role: Role = Role.CUSTOMER
    company_name: str | None = Field(None, max_length=200)
    external_subject: str | None = Field(None, max_length=255)


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=200)
    email: str | None = Field(None, pattern=_EMAIL_PATTERN, max_length=320)
    password: str | None = Field(None, min_length=6, max_length=128)
    phone: str | None = Field(None, max_length=40)
    role: Role | None = None
    company_name: str | None = Field(None, max_length=200)
    external_subject: str | None = Field(None, max_length=255)


def _to_columns(fields: dict) -> dict:
    """Hash the password, flatten the role enum; company_name only for travel companies."""
    fields = dict(fields)
    password = fields.pop("password", None)
    if password:
        fields["password_hash"] = hash_password(password)
    if isinstance(fields.get("role"), Role):
        fields["role"] = fields["role"].value
    if "role" in fields and fields["role"] != Role.TRAVEL_COMPANY.value:
        fields["company_name"] = None
    return fields


@router.get("")
def list_users(user: CurrentUser = Depends(_admin_only)) -> dict:
    from frontdesk.infra.db import txn

    with txn() as cur:
        users = users_repository.list_users(cur)
    return {"success": True, "count": len(users), "data": users}


@router.post("", status_code=201)
def create_user(body: CreateUserRequest, user: CurrentUser = Depends(_admin_only)) -> dict:
    """Create an account; 400 if the email is already registered."""
    from frontdesk.infra.db import txn

    if body.role == Role.TRAVEL_COMPANY and not body.company_name:
        raise ValidationError("company_name is required for travel companies")

    with txn() as cur:
        if users_repository.email_taken(cur, body.email):
            raise ValidationError("User with this email already exists")
        created = users_repository.insert_user(cur, _to_columns(body.model_dump(exclude_none=True)))

    logger.info(
        "user created",
        extra={
            "extra_fields": safe_log_context(
                user_id=created["id"], role=created["role"], email=created["email"]
            )
        },
    )
    return {"success": True, "data": created, "message": "User created successfully"}


@router.get("/{user_id}")
def get_user(
    user_id: UUID = Path(..., description="User ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    from frontdesk.infra.db import txn

    if user.role != Role.ADMIN.value and user.id != str(user_id):
        raise ForbiddenError("Not authorized to view this user")

    with txn() as cur:
        found = users_repository.get_user(cur, str(user_id))
    if found is None:
        raise NotFoundError("User not found")
    return {"success": True, "data": found}


@router.put("/{user_id}")
def update_user(
    body: UpdateUserRequest,
    user_id: UUID = Path(..., description="User ID"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Partial update. Non-admins may only edit their own contact details and password."""
    from frontdesk.infra.db import txn

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    is_admin = user.role == Role.ADMIN.value
    if not is_admin:
        if user.id != str(user_id):
            raise ForbiddenError("Not authorized to update this user")
        if changes.keys() - _SELF_EDITABLE:
            raise ForbiddenError("Only administrators can change role, company or identity")
    if not changes:
        raise ValidationError("No fields to update")

    with txn() as cur:
        if "email" in changes and users_repository.email_taken(
            cur, changes["email"], exclude_user_id=str(user_id)
        ):
            raise ValidationError("User with this email already exists")
        updated = users_repository.update_user(cur, str(user_id), _to_columns(changes))

    if updated is None:
        raise NotFoundError("User not found")
    return {"success": True, "data": updated, "message": "User updated successfully"}


@router.delete("/{user_id}")
def delete_user(
    user_id: UUID = Path(..., description="User ID"),
    user: CurrentUser = Depends(_admin_only),
) -> dict:
    from frontdesk.infra.db import txn

    if user.id == str(user_id):
        raise ValidationError("You cannot delete your own account")

    try:
        with txn() as cur:
            deleted = users_repository.delete_user(cur, str(user_id))
    except pg_errors.ForeignKeyViolation:
        raise ValidationError("Cannot delete a user with reservations or billing records")
    if not deleted:
        raise NotFoundError("User not found")

    logger.info("user deleted", extra={"extra_fields": {"user_id": str(user_id)}})
    return {"success": True, "message": "User deleted successfully"}

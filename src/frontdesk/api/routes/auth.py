"""Auth routes - caller identity."""

from fastapi import APIRouter, Depends

from frontdesk.api.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/whoami")
def whoami(user: CurrentUser = Depends(get_current_user)) -> dict:
    """Return the authenticated caller with role and company."""
    return {
        "success": True,
        "data": {
            "id": user.id,
            "external_subject": user.external_subject,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "company_name": user.company_name,
        },
    }

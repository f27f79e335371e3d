"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

from frontdesk.api.routes import auth, billings, reservations, rooms, users

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(auth.router)
router.include_router(reservations.router)
router.include_router(rooms.router)
router.include_router(billings.router)
router.include_router(users.router)

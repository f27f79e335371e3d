"""ASGI entrypoint: uvicorn frontdesk.api.app:app (role from APP_ROLE)."""

from frontdesk.api.factory import create_app

app = create_app()

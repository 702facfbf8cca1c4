"""FastAPI dependencies shared by the routers."""

from fastapi import Request

from ballotbox.service import ElectionService


def get_service(request: Request) -> ElectionService:
    """The ElectionService built at startup (or injected by tests)."""
    return request.app.state.service

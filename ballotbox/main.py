# main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ballotbox.config import CORS_ORIGINS, MONGO_DB, STORAGE_BACKEND
from ballotbox.errors import ElectionError
from ballotbox.routes.election_routes import router as election_router
from ballotbox.routes.vote_routes import vote_router
from ballotbox.service import ElectionService
from ballotbox.storage import ElectionStore, MemoryStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ==============================================================================
# STORAGE
# ==============================================================================

def create_store(backend: str = STORAGE_BACKEND) -> ElectionStore:
    if backend == "memory":
        logger.info("Using in-memory election store")
        return MemoryStore()
    if backend == "mongo":
        from ballotbox.database.connection import create_client
        from ballotbox.storage_mongo import MongoStore

        return MongoStore(create_client(), MONGO_DB)
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r}. Use 'memory' or 'mongo'.")


# ==============================================================================
# ERROR MAPPING
# ==============================================================================

HTTP_STATUS = {
    "NotFound": 404,
    "NotAcceptingVotes": 400,
    "NotEligible": 403,
    "InvalidCandidate": 400,
    "DuplicateVote": 409,
    "NotAvailable": 403,
    "StorageUnavailable": 503,
    "ValidationFailed": 422,
    "ElectionLocked": 409,
}


async def election_error_handler(request: Request, exc: ElectionError) -> JSONResponse:
    code = HTTP_STATUS.get(exc.kind, 400)
    headers = {"Retry-After": "1"} if exc.is_retryable else None
    return JSONResponse(status_code=code, content={"detail": exc.to_dict()}, headers=headers)


# ==============================================================================
# APPLICATION
# ==============================================================================

def create_app(service: Optional[ElectionService] = None) -> FastAPI:
    """Build the API. Pass ``service`` to skip building one from config."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "service", None) is None:
            owned = create_store()
            app.state.service = ElectionService(owned)
        yield
        if owned is not None:
            owned.close()

    app = FastAPI(title="BallotBox - Election Lifecycle and Vote Integrity API", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ElectionError, election_error_handler)

    app.include_router(election_router)
    app.include_router(vote_router)

    @app.get("/", tags=["Root"])
    def read_root():
        return {"message": "Voting Platform API is running!", "status": "OK"}

    @app.get("/health", tags=["Root"])
    def health_check():
        return {
            "status": "healthy",
            "storage": STORAGE_BACKEND,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()

"""
FastAPI Backend dla Trap System.

Endpoints:
    /api/board/...        - strony, tokeny, postacie, ruch, drzwi, zegar
    /api/traps/...        - konfiguracja i sterowanie pułapkami
    /api/detection/...    - wykrywanie pasywne, aury
    /api/interaction/...  - sesje interakcji, testy, rzuty
    /api/events           - dziennik zdarzeń
    /api/macros/...       - eksport makr, reset stołu

    GET  /api/health      - health check
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from trapsystem.errors import MissingReference, TrapSystemError
from api.dependencies import get_system
from api.routers import board, traps, detection, interaction, events, macros

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events."""
    get_system()
    print("🚀 Trap System API starting...")
    print("🌐 Docs at http://localhost:8000/docs")
    yield
    print("👋 Trap System API shutting down...")


app = FastAPI(
    title="Trap System API",
    description="Traps for a virtual tabletop: movement triggers, passive detection, GM interactions",
    version="2.0.0",
    lifespan=lifespan,
)

# CORS - allow all origins (including file://)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TrapSystemError)
async def trap_system_error(request: Request, exc: TrapSystemError) -> JSONResponse:
    """MissingReference -> 404, pozostałe błędy domenowe -> 400."""
    status = 404 if isinstance(exc, MissingReference) else 400
    logger.info("%s %s -> %d %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


# Include API routers
app.include_router(board.router, prefix="/api", tags=["Board"])
app.include_router(traps.router, prefix="/api", tags=["Traps"])
app.include_router(detection.router, prefix="/api", tags=["Detection"])
app.include_router(interaction.router, prefix="/api", tags=["Interaction"])
app.include_router(events.router, prefix="/api", tags=["Events"])
app.include_router(macros.router, prefix="/api", tags=["Macros"])


@app.get("/api/health")
async def health():
    """API health check."""
    return {"status": "healthy"}

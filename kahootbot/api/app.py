"""
FastAPI Application - Control API for running players.

Endpoints:
    POST   /api/v1/sessions        Join one auto-answer player
    POST   /api/v1/bots            Join several auto-answer bots
    GET    /api/v1/sessions        List active session IDs
    GET    /api/v1/sessions/{id}   Get session status and scores
    DELETE /api/v1/sessions/{id}   Stop a session (disconnects after the current poll)
    GET    /health                 Health check

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Union
import os

from .. import __version__

ALLOWED_ORIGINS = os.getenv("KAHOOTBOT_ALLOWED_ORIGINS", "*").split(",")


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse

    from ..config import ClientConfig
    from ..session import SessionManager
    from .service import APIService
    from .schemas import (
        BotsRequest,
        BotsResponse,
        EndSessionResponse,
        ErrorCode,
        ErrorResponse,
        HealthResponse,
        JoinRequest,
        SessionListResponse,
        SessionResponse,
    )

    app = FastAPI(
        title="kahootbot API",
        description="Join live quiz games with automated players and watch their scores.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService(
        session_manager=SessionManager(config=ClientConfig.from_env())
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    _status_codes = {
        ErrorCode.SESSION_NOT_FOUND: 404,
        ErrorCode.INVALID_GAME_PIN: 400,
        ErrorCode.INVALID_MODE: 400,
        ErrorCode.VALIDATION_ERROR: 422,
        ErrorCode.INTERNAL_ERROR: 500,
    }

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=_status_codes.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Join a game with one player",
    )
    async def join_game(request: JoinRequest) -> Union[SessionResponse, JSONResponse]:
        """Start an auto-answer player in the game. It joins in the background."""
        response = api_service.join(request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.post(
        "/api/v1/bots",
        response_model=BotsResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Join a game with several bots",
    )
    async def join_bots(request: BotsRequest) -> Union[BotsResponse, JSONResponse]:
        """Start `count` auto-answer bots named {prefix}1..{prefix}{count}."""
        response = api_service.join_bots(request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List IDs of sessions still joining or playing."""
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Current status, score, rank and nemesis of a session."""
        response = api_service.get_session(session_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="Stop a session",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """Stop a session; it disconnects once its current poll returns."""
        success = api_service.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # System
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="kahootbot",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "kahootbot API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app

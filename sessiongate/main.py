#!/usr/bin/env python3
"""
Sessiongate - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Builds the provider registry, session manager and lock coordinator
3. Runs the HTTP and WebSocket surface

All session and lock logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import redis.asyncio as redis
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from sessiongate.config.provider import ConfigProvider, EnvConfigProvider
from sessiongate.logging_config import configure_logging, get_logging_config
from sessiongate.modules.api import (
    HealthResponse,
    LockAction,
    LockActionResponse,
    LockStatusResponse,
    WebSocketReply,
)
from sessiongate.modules.lock import JsonFileLockRecordStore, LockCoordinator, MemoryLockRecordStore
from sessiongate.modules.lock.records import LockRecordStore
from sessiongate.modules.session import (
    SessionIdentifierError,
    SessionUnavailableError,
    new_session_manager,
)
from sessiongate.modules.storage import StorageModule, build_registry

logger = logging.getLogger(__name__)


def _build_records(path: Optional[str]) -> LockRecordStore:
    if path:
        return JsonFileLockRecordStore(path)
    logger.warning("LOCK_STORE_PATH not set; lock records will not survive a restart")
    return MemoryLockRecordStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    state = app.state
    config_provider: ConfigProvider = state.config_provider
    session_config = config_provider.get_session_config()
    storage_config = config_provider.get_storage_config()

    logger.info("Starting Sessiongate...")

    storage = None
    redis_client = state.redis_client
    if redis_client is None and storage_config.redis_enabled:
        storage = StorageModule(storage_config.redis_url)
        redis_client = await storage.connect()

    state.backend_errors = 0

    def count_backend_error(operation: str, exc: Exception) -> None:
        state.backend_errors += 1

    try:
        registry = build_registry(session_config, storage_config, redis_client)
        manager = new_session_manager(
            registry,
            session_config.provider,
            session_config.cookie_name,
            session_config.max_lifetime,
            error_sink=count_backend_error,
        )
        records = state.records if state.records is not None else _build_records(storage_config.lock_store_path)
        coordinator = LockCoordinator(manager, records)
        await coordinator.initialize()
    except Exception:
        logger.error("Sessiongate startup failed", exc_info=True)
        if storage:
            await storage.disconnect()
        raise
    manager.start_gc()

    state.provider_name = session_config.provider
    state.manager = manager
    state.coordinator = coordinator
    logger.info(
        f"Sessiongate started with provider {session_config.provider!r}, "
        f"cookie {session_config.cookie_name!r}, lifetime {session_config.max_lifetime}s"
    )

    yield

    logger.info("Shutting down Sessiongate...")
    await manager.stop_gc()
    state.manager = None
    state.coordinator = None
    if storage:
        await storage.disconnect()
    logger.info("Sessiongate shutdown complete")


def get_coordinator(request: Request) -> LockCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(503, "Service not initialized")
    return coordinator


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    redis_client: Optional[Any] = None,
    records: Optional[LockRecordStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config_provider: Configuration source (environment by default)
        redis_client: Pre-built async Redis client, used instead of REDIS_URL
        records: Pre-built lock record store, used instead of LOCK_STORE_PATH
    """
    app = FastAPI(
        title="Sessiongate API",
        description="Session and write-lock layer for a background service web UI",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config_provider = config_provider or EnvConfigProvider()
    app.state.redis_client = redis_client
    app.state.records = records
    app.state.manager = None
    app.state.coordinator = None

    # Session lock endpoints

    @app.get("/api/session/lock", response_model=LockStatusResponse)
    async def check_lock(
        request: Request,
        response: Response,
        coordinator: LockCoordinator = Depends(get_coordinator),
    ):
        """
        Check the lock flag of the caller's session.

        Starts a session (and sets its cookie) when the request carries none.
        """
        session_id, proceed = await coordinator.lock_status(request, response)
        return LockStatusResponse(session_id=session_id, proceed=proceed)

    @app.post("/api/session/lock", response_model=LockActionResponse)
    async def lock(
        request: Request,
        response: Response,
        coordinator: LockCoordinator = Depends(get_coordinator),
    ):
        await coordinator.lock(request, response)
        return LockActionResponse(status=LockAction.LOCKED)

    @app.post("/api/session/unlock", response_model=LockActionResponse)
    async def unlock(
        request: Request,
        response: Response,
        coordinator: LockCoordinator = Depends(get_coordinator),
    ):
        await coordinator.unlock(request, response)
        return LockActionResponse(status=LockAction.UNLOCKED)

    @app.delete("/api/session", status_code=204)
    async def end_session(
        request: Request,
        coordinator: LockCoordinator = Depends(get_coordinator),
    ):
        """Destroy the caller's session and expire its cookie."""
        response = Response(status_code=204)
        await coordinator.manager.end(request, response)
        return response

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Command channel for the web UI.

        Accepts the text command "unlock"; every command gets a JSON reply.
        """
        coordinator = websocket.app.state.coordinator
        if coordinator is None:
            await websocket.close(code=1013)
            return

        await websocket.accept()
        try:
            while True:
                message = (await websocket.receive_text()).strip()
                if message != "unlock":
                    reply = WebSocketReply(error=f"unknown command: {message}")
                else:
                    try:
                        await coordinator.websocket_unlock(websocket)
                        reply = WebSocketReply(unlocked=True)
                    except SessionUnavailableError as e:
                        reply = WebSocketReply(error=str(e))
                await websocket.send_json(reply.model_dump())
        except WebSocketDisconnect:
            logger.debug("WebSocket client disconnected")

    # Health/Monitoring Endpoints

    @app.get("/healthz")
    async def healthz():
        """
        Minimal health check endpoint for readiness/liveness probes.

        Returns:
            200: Service is running
        """
        return {"status": "ok"}

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """
        Module readiness.

        Returns:
            200: Session manager and GC loop running
            503: Service not initialized
        """
        state = request.app.state
        if state.manager is None or state.coordinator is None:
            return JSONResponse(status_code=503, content={"status": "unhealthy"})

        return HealthResponse(
            status="healthy" if state.manager.gc_running else "degraded",
            provider=state.provider_name,
            gc_running=state.manager.gc_running,
            backend_errors=state.backend_errors,
            lock_records=len(state.coordinator.records),
        )

    # Error handlers

    @app.exception_handler(SessionIdentifierError)
    async def identifier_error_handler(request, exc):
        """Handle identifier generation failures."""
        logger.error(f"Session identifier generation failed: {exc}")
        return JSONResponse(status_code=500, content={"error": "Could not start session"})

    @app.exception_handler(SessionUnavailableError)
    async def session_unavailable_handler(request, exc):
        """Handle session backend failures."""
        logger.error(f"Session unavailable: {exc}")
        return JSONResponse(status_code=503, content={"error": "Session backend unavailable"})

    @app.exception_handler(redis.ConnectionError)
    async def redis_error_handler(request, exc):
        """Handle Redis connection errors."""
        logger.error(f"Redis connection error: {exc}")
        return JSONResponse(status_code=503, content={"error": "Database connection failed"})

    return app


app = create_app()


def main() -> None:
    api_config = EnvConfigProvider().get_api_config()
    configure_logging(api_config.log_level)
    uvicorn.run(
        "sessiongate.main:app",
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        reload=api_config.debug,
        log_config=get_logging_config(api_config.log_level),
    )


if __name__ == "__main__":
    main()

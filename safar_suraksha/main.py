from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import asyncio
import json
import logging
import time
from typing import Any, Optional
from datetime import datetime, timezone

from safar_suraksha.api import emergency, location, registration
from safar_suraksha.config import Settings, settings
from safar_suraksha.core.emergency_alert import AlertBroadcaster, AlertSubscription
from safar_suraksha.core.errors import InvalidInputError
from safar_suraksha.core.geofencing import ZoneRegistry
from safar_suraksha.core.ledger import LedgerRegistrar
from safar_suraksha.core.scoring import SafetyScorer, TwoLevelSafetyScorer
from safar_suraksha.utils.blockchain import Web3LedgerClient
from safar_suraksha.utils.notifications import WebhookAlertForwarder

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

def build_registrar(app_settings: Settings) -> LedgerRegistrar:
    client = None
    if app_settings.ledger_configured:
        client = Web3LedgerClient.from_settings(app_settings)
        logger.info("Ledger registrations submitted from %s", client.account)
    else:
        logger.warning("Ledger not configured; registrations will use fallback mode")

    return LedgerRegistrar(
        client,
        fee_multiplier=app_settings.LEDGER_FEE_MULTIPLIER,
        timeout=app_settings.LEDGER_TIMEOUT_SECONDS,
        submit_attempts=app_settings.LEDGER_SUBMIT_ATTEMPTS
    )

# Lifespan manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    app_settings: Settings = app.state.settings
    if getattr(app.state, "zone_registry", None) is None:
        app.state.zone_registry = ZoneRegistry.load(app_settings.ZONES_FILE)
    if getattr(app.state, "registrar", None) is None:
        app.state.registrar = build_registrar(app_settings)

    forwarder = None
    if app_settings.ALERT_WEBHOOK_URL:
        forwarder = WebhookAlertForwarder(
            app_settings.ALERT_WEBHOOK_URL, app_settings.ALERT_WEBHOOK_TIMEOUT_SECONDS
        )
        await forwarder.start(app.state.broadcaster)

    app.state.started_at = time.monotonic()
    logger.info("%s starting up with %d zone(s)",
                app_settings.APP_NAME, len(app.state.zone_registry))
    yield
    # Shutdown
    if forwarder is not None:
        await forwarder.stop(app.state.broadcaster)
    logger.info("%s shutting down", app_settings.APP_NAME)

async def _forward_alerts(
    websocket: WebSocket,
    subscription: AlertSubscription,
    send_lock: asyncio.Lock
):
    async for event in subscription:
        try:
            async with send_lock:
                await websocket.send_text(json.dumps(event, default=str))
        except Exception as e:
            logger.warning("Error sending alert to %s: %s", subscription.name, e)
            return

async def _close_observer(
    broadcaster: AlertBroadcaster,
    subscription: AlertSubscription,
    forward_task: Optional[asyncio.Task]
):
    broadcaster.unsubscribe(subscription)
    if forward_task is not None:
        forward_task.cancel()
        try:
            await forward_task
        except asyncio.CancelledError:
            pass

def create_app(
    app_settings: Settings = settings,
    *,
    zone_registry: Optional[ZoneRegistry] = None,
    scorer: Optional[SafetyScorer] = None,
    broadcaster: Optional[AlertBroadcaster] = None,
    registrar: Optional[LedgerRegistrar] = None
) -> FastAPI:
    app = FastAPI(
        title="SafarSuraksha Tourist Safety API",
        description="Geofence alerts, panic broadcasting and itinerary proofs for tourists",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.settings = app_settings
    app.state.zone_registry = zone_registry
    app.state.registrar = registrar
    app.state.scorer = scorer or TwoLevelSafetyScorer(
        safe_score=app_settings.SAFE_SCORE, alert_score=app_settings.ALERT_SCORE
    )
    app.state.broadcaster = broadcaster or AlertBroadcaster(app_settings.ALERT_QUEUE_SIZE)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(location.router, prefix="/api", tags=["Location"])
    app.include_router(emergency.router, prefix="/api", tags=["Emergency"])
    app.include_router(registration.router, prefix="/api", tags=["Registration"])

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed body for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())}
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.websocket("/ws/{session_id}")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        alert_broadcaster: AlertBroadcaster = websocket.app.state.broadcaster
        subscription = alert_broadcaster.subscribe(session_id)
        send_lock = asyncio.Lock()
        forward_task = None
        try:
            await websocket.accept()
            forward_task = asyncio.create_task(
                _forward_alerts(websocket, subscription, send_lock)
            )
            while True:
                # Any inbound text is treated as a heartbeat
                await websocket.receive_text()
                async with send_lock:
                    await websocket.send_text(json.dumps({
                        "event": "heartbeat",
                        "timestamp": datetime.now(timezone.utc).isoformat()
                    }))
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.warning("WebSocket error for %s: %s", session_id, e)
        finally:
            await _close_observer(alert_broadcaster, subscription, forward_task)

    @app.get("/")
    async def root(request: Request) -> dict[str, Any]:
        started_at = getattr(request.app.state, "started_at", None)
        return {
            "status": "ok",
            "service": app_settings.APP_NAME,
            "uptime": time.monotonic() - started_at if started_at is not None else 0.0
        }

    # Health check endpoint
    @app.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "zones": len(request.app.state.zone_registry),
            "ledger_enabled": request.app.state.registrar.enabled,
            "active_connections": request.app.state.broadcaster.subscriber_count
        }

    return app

app = create_app()

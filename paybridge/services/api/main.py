"""HTTP surface for payment intents, webhooks and storefront helpers.

Routes translate requests into orchestrator/reconciler calls; domain errors
are mapped to `{"error": ...}` bodies by the exception handlers below.
"""

from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import APIRouter, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from paybridge.common.config import Settings, settings
from paybridge.common.errors import (
    IntentNotFound,
    InvalidAmount,
    InvalidTransition,
    ProcessorError,
    VerificationFailure,
)
from paybridge.common.logging import configure_logging, logger, trace_id_ctx
from paybridge.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    webhook_verification_failures_total,
)
from paybridge.common.startup import log_startup_config
from paybridge.common.tracing import instrument_app, setup_tracing
from paybridge.services.api.catalog import PRODUCTS
from paybridge.services.api.schemas import (
    ConfigResponse,
    CreateIntentRequest,
    CreateIntentResponse,
    IntentStatusResponse,
)
from paybridge.services.intents.schemas import IntentStatus
from paybridge.services.intents.service import IntentOrchestrator
from paybridge.services.intents.store import InMemoryIntentStore, IntentStore
from paybridge.services.processor.client import PaymentProcessor, StripeProcessorClient
from paybridge.services.webhooks.reconciler import WebhookReconciler
from paybridge.services.webhooks.signature import verify_webhook

router = APIRouter()


def _status_response(status: IntentStatus) -> IntentStatusResponse:
    return IntentStatusResponse(
        status=status.state.lower(),
        amount=status.amount_minor_units,
        currency=status.currency,
        metadata=status.metadata,
    )


@router.get("/health")
def health():
    """Container liveness probe."""

    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/readiness")
def readiness():
    """Container readiness probe."""

    return {"status": "ready"}


@router.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@router.get("/api/config", response_model=ConfigResponse)
def get_config(request: Request):
    """Publishable key the browser needs to initialise the processor SDK."""

    app_settings: Settings = request.app.state.settings
    return ConfigResponse(publishable_key=app_settings.stripe_publishable_key)


@router.get("/api/products")
def list_products():
    return {"products": [product.model_dump() for product in PRODUCTS]}


@router.post("/api/create-payment-intent", response_model=CreateIntentResponse)
async def create_payment_intent(
    req: CreateIntentRequest,
    request: Request,
    idempotency_key: str | None = Header(default=None),
):
    """Create a processor intent and hand its client secret to the caller once."""

    orchestrator: IntentOrchestrator = request.app.state.orchestrator
    created = await orchestrator.create_intent(
        req.amount,
        currency=req.currency,
        description=req.description,
        metadata=req.metadata,
        idempotency_key=idempotency_key,
    )
    return CreateIntentResponse(client_secret=created.client_secret, payment_intent_id=created.id)


@router.get("/api/payment-status/{intent_id}", response_model=IntentStatusResponse)
async def payment_status(intent_id: str, request: Request):
    orchestrator: IntentOrchestrator = request.app.state.orchestrator
    return _status_response(await orchestrator.get_status(intent_id))


@router.post("/api/payment-intents/{intent_id}/cancel", response_model=IntentStatusResponse)
async def cancel_payment_intent(intent_id: str, request: Request):
    orchestrator: IntentOrchestrator = request.app.state.orchestrator
    return _status_response(await orchestrator.cancel_intent(intent_id))


@router.post("/api/webhook")
async def webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
):
    """Verify the raw body, then reconcile the event.

    The body is read unparsed; verification happens before any decoding.
    """

    app_settings: Settings = request.app.state.settings
    reconciler: WebhookReconciler = request.app.state.reconciler
    payload = await request.body()
    try:
        event = verify_webhook(
            payload,
            stripe_signature,
            app_settings.stripe_webhook_secret,
            app_settings.webhook_tolerance_seconds,
        )
    except VerificationFailure as exc:
        webhook_verification_failures_total.labels(service=app_settings.service_name).inc()
        logger.warning("webhook_verification_failed reason=%s", exc.reason)
        raise
    ack = await reconciler.reconcile(event)
    return {"received": ack.received}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Translate domain errors to HTTP responses."""

    @app.exception_handler(InvalidAmount)
    async def invalid_amount(_: Request, exc: InvalidAmount):
        return _error(400, str(exc))

    @app.exception_handler(VerificationFailure)
    async def verification_failure(_: Request, exc: VerificationFailure):
        return _error(400, VerificationFailure.public_message)

    @app.exception_handler(IntentNotFound)
    async def intent_not_found(_: Request, exc: IntentNotFound):
        return _error(404, str(exc))

    @app.exception_handler(InvalidTransition)
    async def invalid_transition(_: Request, exc: InvalidTransition):
        return _error(409, str(exc))

    @app.exception_handler(ProcessorError)
    async def processor_error(_: Request, exc: ProcessorError):
        logger.error("processor_error message=%s", exc.message)
        return _error(500, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(_: Request, exc: RequestValidationError):
        return _error(400, "Invalid request body")

    @app.exception_handler(Exception)
    async def unhandled_error(_: Request, exc: Exception):
        logger.exception("server_error error=%s", type(exc).__name__)
        return _error(500, "Internal server error")


def create_app(
    app_settings: Settings | None = None,
    store: IntentStore | None = None,
    processor: PaymentProcessor | None = None,
) -> FastAPI:
    """Wire store, processor client, orchestrator and reconciler into an app."""

    app_settings = app_settings or settings
    store = store if store is not None else InMemoryIntentStore()
    processor = processor if processor is not None else StripeProcessorClient(app_settings)
    orchestrator = IntentOrchestrator(store, processor, app_settings)

    app = FastAPI(title="PayBridge Payment Intents")
    app.state.settings = app_settings
    app.state.orchestrator = orchestrator
    app.state.reconciler = WebhookReconciler(orchestrator)
    if setup_tracing(app_settings):
        instrument_app(app)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency for every HTTP call."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        token = trace_id_ctx.set(request.headers.get("x-request-id") or str(uuid4()))
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            trace_id_ctx.reset(token)
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=app_settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=app_settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    register_exception_handlers(app)
    app.include_router(router)
    return app


configure_logging(settings)
log_startup_config(
    settings,
    [
        "service_name",
        "stripe_api_base",
        "stripe_secret_key",
        "stripe_webhook_secret",
        "min_amount_minor_units",
        "webhook_tolerance_seconds",
        "status_requery",
    ],
)
app = create_app()


def run() -> None:
    """Console entrypoint: serve the app with uvicorn."""

    uvicorn.run(app, host=settings.host, port=settings.port)

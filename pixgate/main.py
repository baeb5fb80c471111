import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import ConfigurationError, PixGatewayError, UpstreamRejected
from .providers.registry import build_gateway, resolve_provider_name
from .routers import payments
from .settings import settings
from .utils.security import mask_secret

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

app.include_router(payments.router, tags=["Payments"])


@app.on_event("startup")
async def _startup():
    app.state.gateway = None
    app.state.gateway_error = None
    try:
        app.state.gateway = build_gateway(settings)
        logger.info("PIX provider %s ready (key %s)", app.state.gateway.name, mask_secret(settings.PAYEVO_SECRET_KEY))
    except ConfigurationError as e:
        if settings.FAIL_ON_MISSING_CREDENTIALS:
            raise
        logger.error("PIX provider not configured: %s", e)
        app.state.gateway_error = e


@app.exception_handler(PixGatewayError)
async def _gateway_error(request: Request, exc: PixGatewayError):
    if isinstance(exc, UpstreamRejected) or exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    fields = {".".join(str(p) for p in err["loc"][1:]) or "body": err["msg"] for err in exc.errors()}
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": "Dados de pagamento inválidos", "fields": fields},
    )


@app.get("/health", tags=["Ops"])
async def health():
    provider = resolve_provider_name(settings.PIX_PROVIDER)
    if provider == "payevo":
        configured = bool((settings.PAYEVO_SECRET_KEY or "").strip())
    else:
        configured = provider is not None
    return {"status": "ok", "provider": provider, "credentials_configured": configured}

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import Settings, settings as default_settings
from .errors import register_exception_handlers
from .logging import setup_logging, RequestIdMiddleware
from .routes.browse import router as browse_router
from .routes.upload import router as upload_router
from .services.admission import AdmissionRegistry
from .storage.disk_manager import DiskManager
from .storage.provider import StorageProvider


logger = structlog.get_logger(__name__)

# Hardening headers applied to every response (no HSTS: TLS is terminated upstream)
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "no-referrer",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("startup", disks=len(getattr(app.state.disk_manager, "disks", {}) or {}))
    yield
    if app.state.owns_http_client:
        await app.state.http_client.aclose()
    logger.info("shutdown", admitted_uploads=len(app.state.admission))


def create_app(
    settings: Optional[Settings] = None,
    disk_manager: Optional[StorageProvider] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.state.settings = settings
    app.state.owns_http_client = http_client is None
    app.state.http_client = http_client or httpx.AsyncClient(
        timeout=settings.yadisk_timeout, follow_redirects=True
    )
    app.state.disk_manager = disk_manager or DiskManager.from_settings(settings, app.state.http_client)
    app.state.admission = AdmissionRegistry(
        leeway=settings.jwt_leeway,
        sweep_interval=settings.admission_sweep_interval,
    )

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    register_exception_handlers(app)

    # Routers
    app.include_router(upload_router)

    # Metrics
    Instrumentator(registry=CollectorRegistry()).instrument(app).expose(app)

    # Catch-all browse route goes last
    app.include_router(browse_router)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port, log_level=default_settings.log_level.lower())


if __name__ == "__main__":
    run()

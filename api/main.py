"""
Punto de entrada del servicio de sincronización.

Expone el sync de tipos de cambio NBU, la sync de declaraciones aduaneras
por jobs, la administración de jobs y el backfill de resúmenes.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.config import settings, get_cors_origins
from app.core.events import startup_handler, shutdown_handler
from app.api.v1.router import api_router
from app.api.middlewares.error_handler import ErrorHandlerMiddleware
from app.shared.exceptions.base import AppException
from app.shared.utils.statistics_cache import StatisticsCache

PUBLIC_ROUTES = (
    ("Swagger UI", "/docs"),
    ("Health", "/health"),
    ("Sync NBU", "/api/v1/exchange-rates/sync?type=daily"),
    ("Sync declaraciones", "/api/v1/sync/declarations"),
    ("Jobs (admin)", "/api/v1/admin/sync-jobs"),
)


def _register_exception_handlers(application: FastAPI) -> None:
    """Todas las respuestas de error comparten la forma {error, message, details}."""

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.error_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "VALIDATION_ERROR",
                "message": "Parámetros inválidos",
                "details": {"fields": fields},
            },
        )


def create_application() -> FastAPI:
    """
    Construye la aplicación con middlewares, rutas y cache de estadísticas.

    Returns:
        FastAPI: Instancia configurada de la aplicación
    """
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Sincronizacion de tipos de cambio NBU y declaraciones aduaneras",
    )
    application.state.statistics_cache = StatisticsCache(ttl_seconds=settings.STATISTICS_CACHE_TTL_SECONDS)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    application.add_middleware(ErrorHandlerMiddleware)

    application.add_event_handler("startup", startup_handler(application))
    application.add_event_handler("shutdown", shutdown_handler(application))

    application.include_router(api_router, prefix="/api")
    _register_exception_handlers(application)

    @application.get("/health", tags=["Health"])
    async def health_check():
        """Estado del servicio y de los secretos que habilitan cada superficie."""
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "configured": {
                "exchange_rates_sync": bool(settings.EXCHANGE_RATES_SYNC_SECRET),
                "admin": bool(settings.ADMIN_API_TOKEN),
                "customs_gateway": bool(settings.CUSTOMS_GATEWAY_URL),
            },
        }

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"
    for label, path in PUBLIC_ROUTES:
        logger.info(f"  {label:<20} {base_url}{path}")

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )

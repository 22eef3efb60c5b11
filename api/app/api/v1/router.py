"""
Router principal de la API v1.
Agrupa todos los endpoints de la version 1.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import admin, declaration_sync, exchange_rates, statistics, sync_jobs


# Router principal de la API v1
api_router = APIRouter(prefix="/v1")

# Incluir routers de endpoints especificos
api_router.include_router(exchange_rates.router)
api_router.include_router(admin.router)
api_router.include_router(sync_jobs.router)
api_router.include_router(declaration_sync.router)
api_router.include_router(statistics.router)

"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos principales:
    - Base de datos: DATABASE_URL completa o por componentes
    - Tipos de cambio NBU: endpoint, pausas entre dias y ventanas de sync
    - Declaraciones: tamaño de chunk y pausa entre requests al gateway aduanero
    - Secretos para disparar syncs desde schedulers externos
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Customs Sync API")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="customs_user")
    DATABASE_PASSWORD: str = Field(default="customs_pass")
    DATABASE_NAME: str = Field(default="customs_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Seguridad
    # Secreto compartido con el scheduler que dispara /exchange-rates/sync
    EXCHANGE_RATES_SYNC_SECRET: str = Field(default="")
    # Token para endpoints de administracion (auditoria, jobs)
    ADMIN_API_TOKEN: str = Field(default="")

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # NBU (Banco Nacional de Ucrania)
    NBU_API_URL: str = Field(default="https://bank.gov.ua/NBUStatService/v1/statdirectory/exchange")
    NBU_TIMEOUT_SECONDS: int = Field(default=30)
    EXCHANGE_RATE_DAY_DELAY_MS: int = Field(default=100)
    EXCHANGE_RATE_FULL_YEARS: int = Field(default=3)
    EXCHANGE_RATE_GAP_DAYS: int = Field(default=30)
    EXCHANGE_RATE_LOCK_TTL_SECONDS: int = Field(default=30 * 60)
    AUDIT_DAY_DELAY_MS: int = Field(default=150)

    # Gateway aduanero (firma y credenciales viven del otro lado)
    CUSTOMS_GATEWAY_URL: str = Field(default="")
    CUSTOMS_GATEWAY_TOKEN: str = Field(default="")
    CUSTOMS_GATEWAY_TIMEOUT_SECONDS: int = Field(default=90)

    # Sync de declaraciones
    SYNC_CHUNK_DAYS: int = Field(default=7)
    SYNC_REQUEST_DELAY_SECONDS: float = Field(default=1.0)
    SYNC_LOCK_TTL_SECONDS: int = Field(default=6 * 60 * 60)

    # Cache de estadisticas
    STATISTICS_CACHE_TTL_SECONDS: int = Field(default=30 * 60)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuración
settings = Settings()

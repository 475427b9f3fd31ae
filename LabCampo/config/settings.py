# config/settings.py
"""
Configuración centralizada de la aplicación usando Pydantic Settings.
Las variables se cargan desde el archivo .env
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # Base de datos
    DATABASE_URL: str
    SQL_ECHO: bool = False

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = ["http://localhost:4200", "http://localhost:5173"]

    # Zona horaria de referencia para timestamps (fecha_inicio, fecha_completado, ...)
    TIMEZONE: str = "America/Mexico_City"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Programación de actividades (concurrencia)
    SCHEDULING_MAX_RETRIES: int = 3  # Reintentos ante conflictos transitorios de BD
    SCHEDULING_LOCK_TIMEOUT_SECONDS: float = 10.0  # Espera máxima por un lock de recurso/concepto

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()

"""
Configuración centralizada de la aplicación
"""
import json
from typing import List, Optional
from urllib.parse import quote

from pydantic_settings import BaseSettings, SettingsConfigDict

from order_tx.core.exceptions import DatabaseConfigurationError


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # API Settings
    API_TITLE: str = "Order Transactions API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Transactional order processing over PostgreSQL"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database: either a full URL or the individual connection parameters
    DATABASE_URL: Optional[str] = None
    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_HOST: Optional[str] = None
    DB_PORT: int = 5432
    DB_NAME: Optional[str] = None

    # Connection pool
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 20
    DB_POOL_ACQUIRE_TIMEOUT: float = 5.0  # seconds waiting for a free connection
    DB_CONNECT_TIMEOUT: int = 5  # seconds
    DB_STATEMENT_TIMEOUT_MS: int = 30000

    # CORS - Can be string (comma-separated) or JSON array
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def get_database_dsn(self) -> str:
        """
        Build the PostgreSQL DSN

        DATABASE_URL wins when present; otherwise DB_USER, DB_PASSWORD,
        DB_HOST and DB_NAME are all required.

        Raises:
            DatabaseConfigurationError: listing the missing variables
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        required = {
            "DB_USER": self.DB_USER,
            "DB_PASSWORD": self.DB_PASSWORD,
            "DB_HOST": self.DB_HOST,
            "DB_NAME": self.DB_NAME,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise DatabaseConfigurationError(missing)

        # Credentials may contain URL delimiters (@ / :)
        user = quote(self.DB_USER, safe="")
        password = quote(self.DB_PASSWORD, safe="")
        return f"postgresql://{user}:{password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()

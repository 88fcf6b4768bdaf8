"""Server configuration for the bug tracker API."""

import os


class ServerConfig:
    """Server configuration read from the environment."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    WORKERS: int = int(os.getenv("WORKERS", "4"))
    KEEP_ALIVE_TIMEOUT: int = int(os.getenv("KEEP_ALIVE_TIMEOUT", "65"))
    TIMEOUT_GRACEFUL_SHUTDOWN: int = int(os.getenv("TIMEOUT_GRACEFUL_SHUTDOWN", "30"))
    MAX_CONNECTIONS: int = int(os.getenv("MAX_CONNECTIONS", "100"))
    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./bugtracker.db")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "20"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "30"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))
    # CORS settings - comma separated, "*" allows everything
    CORS_ORIGINS: list = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

    @classmethod
    def get_uvicorn_config(cls) -> dict:
        """Get uvicorn configuration for production deployment."""
        return {
            "host": cls.HOST,
            "port": cls.PORT,
            "workers": cls.WORKERS,
            "timeout_keep_alive": cls.KEEP_ALIVE_TIMEOUT,
            "timeout_graceful_shutdown": cls.TIMEOUT_GRACEFUL_SHUTDOWN,
            "limit_concurrency": cls.MAX_CONNECTIONS,
            "access_log": True,
            "log_level": "info",
        }

    @classmethod
    def get_development_config(cls) -> dict:
        """Get uvicorn configuration for development."""
        return {
            "host": cls.HOST,
            "port": cls.PORT,
            "reload": True,
            "reload_dirs": ["server"],
            "log_level": "debug",
            "access_log": True,
        }

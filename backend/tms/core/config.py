from typing import List, Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    DATABASE_SSL: bool = False
    DATABASE_ECHO: bool = False
    REDIS_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    SESSION_IDLE_MINUTES: int = 30
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    API_PORT: int = 8000

    class Config:
        env_file = ".env"

settings = Settings()

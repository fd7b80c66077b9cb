import os
import logging
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEV_SECRET = "foodshare-dev-secret-change-in-production"  # Change this in production


class Settings(BaseModel):
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl: timedelta = timedelta(hours=1)
    database_url: Optional[str] = None
    database_name: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        secret = os.getenv("JWT_SECRET")
        if not secret:
            logger.warning("JWT_SECRET not set, using development secret")
            secret = DEV_SECRET
        return cls(
            jwt_secret=secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            database_url=os.getenv("DATABASE_URL"),
            database_name=os.getenv("DATABASE_NAME"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

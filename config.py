import os
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv

# Load environment variables from this file's directory so running uvicorn from elsewhere still works
ENV_PATH = os.path.join(os.path.dirname(__file__), ".env")
load_dotenv(dotenv_path=ENV_PATH)

DEV_SECRET_KEY = "your-secret-key-change-this-in-production"


@dataclass
class Settings:
    """Runtime configuration for the EduElevate API"""

    mongo_uri: str
    db_name: str = "eduElevateDB"
    app_env: str = "development"
    secret_key: str = DEV_SECRET_KEY
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    stripe_secret_key: Optional[str] = None
    currency: str = "usd"
    port: int = 5000
    request_timeout: int = 30
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        app_env = os.getenv("APP_ENV", "development").lower()  # development | production

        secret_key = os.getenv("ACCESS_TOKEN_SECRET", DEV_SECRET_KEY)
        if app_env != "development" and secret_key == DEV_SECRET_KEY:
            raise ValueError("ACCESS_TOKEN_SECRET must be set in production")

        # CORS_ORIGINS is a comma-separated allow-list; empty means any origin
        cors_origins_env = os.getenv("CORS_ORIGINS", "").strip()
        cors_origins = [o.strip() for o in cors_origins_env.split(",") if o.strip()] or ["*"]

        return cls(
            mongo_uri=build_mongo_uri(),
            db_name=os.getenv("MONGO_DB_NAME", "eduElevateDB"),
            app_env=app_env,
            secret_key=secret_key,
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60)),
            stripe_secret_key=os.getenv("PAYMENT_SECRET_KEY") or None,
            currency=os.getenv("PAYMENT_CURRENCY", "usd"),
            port=int(os.getenv("PORT", 5000)),
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", 30)),
            cors_origins=cors_origins,
        )


def build_mongo_uri() -> str:
    """
    Resolve the MongoDB connection URI.

    MONGO_URI wins when set. Otherwise the Atlas URI is assembled from
    DB_USER / DB_PASS / DB_HOST, and a local server is used when no
    credentials are configured at all.
    """
    mongo_uri = os.getenv("MONGO_URI")
    if mongo_uri:
        return mongo_uri

    user = os.getenv("DB_USER")
    password = os.getenv("DB_PASS")
    if not user or not password:
        return "mongodb://localhost:27017"

    host = os.getenv("DB_HOST", "cluster0.mongodb.net")
    return (
        f"mongodb+srv://{quote_plus(user)}:{quote_plus(password)}@{host}/"
        "?retryWrites=true&w=majority"
    )

import os
from typing import List, Mapping, Optional

DEFAULT_EXCLUDE_PATHS = ",".join([
    "/api/v1/auth/login",
    "/api/v1/auth/captcha",
    "/api/v1/auth/refresh",
    "/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/ws",
])

DEVELOPMENT_SECRET = "development-only-token-secret"


def _as_bool(value: str) -> bool:
    return str(value).lower() in ["true", "1", "yes", "on"]


def _as_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class BackendSettings:
    """Configuration snapshot, read once from the environment."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        self.DEBUG_MODE = env.get("DEBUG_MODE", "development")
        self.LOG_LEVEL = env.get("LOG_LEVEL", "INFO").upper()

        # Relational store
        self.DATABASE_URL = env.get("DATABASE_URL", "sqlite:///./admin.db")
        self.DATABASE_POOL_SIZE = int(env.get("DATABASE_POOL_SIZE", "10"))
        self.DATABASE_MAX_OVERFLOW = int(env.get("DATABASE_MAX_OVERFLOW", "5"))
        self.DATABASE_POOL_TIMEOUT = int(env.get("DATABASE_POOL_TIMEOUT", "30"))

        # Key-value store
        self.REDIS_HOST = env.get("REDIS_HOST", "localhost")
        self.REDIS_PORT = int(env.get("REDIS_PORT", "6379"))
        self.REDIS_PASSWORD = env.get("REDIS_PASSWORD", "")
        self.REDIS_DB = int(env.get("REDIS_DB", "0"))
        self.REDIS_URL = env.get(
            "REDIS_URL",
            f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        )
        self.REDIS_TIMEOUT = float(env.get("REDIS_TIMEOUT", "5"))
        self.REDIS_POOL_SIZE = int(env.get("REDIS_POOL_SIZE", "10"))

        # Tokens
        self.TOKEN_SECRET_KEY = env.get("TOKEN_SECRET_KEY", "")
        self.TOKEN_ALGORITHM = env.get("TOKEN_ALGORITHM", "HS256")
        self.TOKEN_EXPIRE_SECONDS = int(env.get("TOKEN_EXPIRE_SECONDS", str(60 * 60 * 24)))
        self.TOKEN_REFRESH_EXPIRE_SECONDS = int(env.get("TOKEN_REFRESH_EXPIRE_SECONDS", str(60 * 60 * 24 * 7)))
        self.TOKEN_EXCLUDE_PATHS = _as_list(env.get("TOKEN_EXCLUDE_PATHS", DEFAULT_EXCLUDE_PATHS))
        self.COOKIE_REFRESH_TOKEN_KEY = env.get("COOKIE_REFRESH_TOKEN_KEY", "admin_refresh_token")

        # KV namespaces
        self.TOKEN_REDIS_PREFIX = env.get("TOKEN_REDIS_PREFIX", "auth:token")
        self.TOKEN_META_REDIS_PREFIX = env.get("TOKEN_META_REDIS_PREFIX", "auth:token_meta")
        self.TOKEN_ONLINE_REDIS_KEY = env.get("TOKEN_ONLINE_REDIS_KEY", "auth:online")
        self.TOKEN_REFRESH_REDIS_PREFIX = env.get("TOKEN_REFRESH_REDIS_PREFIX", "auth:refresh")
        self.TOKEN_BLACKLIST_REDIS_PREFIX = env.get("TOKEN_BLACKLIST_REDIS_PREFIX", "auth:blacklist")
        self.CAPTCHA_REDIS_PREFIX = env.get("CAPTCHA_REDIS_PREFIX", "auth:captcha")
        self.CACHE_CONFIG_PREFIX = env.get("CACHE_CONFIG_PREFIX", "cache:config")
        self.CACHE_DICT_PREFIX = env.get("CACHE_DICT_PREFIX", "cache:dict")
        self.CACHE_PERMS_PREFIX = env.get("CACHE_PERMS_PREFIX", "cache:perms")

        # Cache TTLs
        self.CACHE_CONFIG_TTL = int(env.get("CACHE_CONFIG_TTL", "3600"))
        self.CACHE_DICT_TTL = int(env.get("CACHE_DICT_TTL", "3600"))
        self.CACHE_PERMS_TTL = int(env.get("CACHE_PERMS_TTL", "600"))

        # Captcha
        self.CAPTCHA_ENABLED = _as_bool(env.get("CAPTCHA_ENABLED", "true"))
        self.CAPTCHA_LENGTH = int(env.get("CAPTCHA_LENGTH", "4"))
        self.CAPTCHA_EXPIRE_SECONDS = int(env.get("CAPTCHA_EXPIRE_SECONDS", "300"))

        # Passwords
        self.PASSWORD_HASH_ROUNDS = int(env.get("PASSWORD_HASH_ROUNDS", "12"))

        # Online session enumeration
        self.ONLINE_SCAN_COUNT = int(env.get("ONLINE_SCAN_COUNT", "100"))
        self.ONLINE_SCAN_LIMIT = int(env.get("ONLINE_SCAN_LIMIT", "1000"))

        # Data permission
        self.DATA_PERMISSION_COLUMN_EXCLUDE = _as_list(
            env.get("DATA_PERMISSION_COLUMN_EXCLUDE", "id,sort,del_flag,created_time,updated_time")
        )

        self.CORS_ALLOWED_ORIGINS = _as_list(env.get("CORS_ALLOWED_ORIGINS", "*"))

    @property
    def is_production(self) -> bool:
        return self.DEBUG_MODE == "production"

    @property
    def token_secret(self) -> str:
        if self.TOKEN_SECRET_KEY:
            return self.TOKEN_SECRET_KEY
        if self.is_production:
            raise RuntimeError("TOKEN_SECRET_KEY must be set in production")
        return DEVELOPMENT_SECRET

settings = BackendSettings()

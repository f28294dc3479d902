from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "RPC Keys"
    # Application settings
    PORT: int = 8000
    HOST: str = "127.0.0.1"
    VERSION: str = "1.0.0"
    DOC_PASSWORD: str | None = None
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]

    # SSL settings
    SSL_KEY: str | None = None
    SSL_CERT: str | None = None

    # SQLAlchemy database URL
    DATABASE_URL: str = "sqlite:///./rpckeys.db"
    DB_CONNECT_TIMEOUT_SECONDS: int = 10
    DB_POOL_TIMEOUT_SECONDS: int = 10
    DB_STATEMENT_TIMEOUT_SECONDS: float = 10 # 0 disables the per-statement limit

    # Login configuration
    ENCODE_KEY: str | None = None
    ENCODE_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 1800 # 30 minutes
    NONCE_EXPIRY_SECONDS: int = 300 # 5 minutes
    NONCE_NUM_BYTES: int = 32
    SESSION_COOKIE_NAME: str = "rpckeys.session-token"
    SESSION_COOKIE_SECURE: bool = False

    # Sign-In With Ethereum
    AUTH_DOMAIN: str = "localhost:3000"
    AUTH_MESSAGE_MAX_AGE_SECONDS: int = 600 # 0 disables the issued-at window

    # Key storage
    ENVIRONMENT: str = "production"
    KEY_NUM_BYTES: int = 16
    RECORDS_PUBLIC_READ: bool = False

    # Debug settings
    DEBUG: bool = False

    class Config:
        env_file = ".env"

# Instantiate the settings
settings = Settings()

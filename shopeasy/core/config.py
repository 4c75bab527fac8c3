# shopeasy/core/config.py
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    # --- API Info ---
    API_TITLE: str = "ShopEasy API"
    API_DESCRIPTION: str = "E-commerce backend: accounts, catalog, cart, wishlist, orders and admin dashboard."
    API_VERSION: str = "1.0.0"

    # --- Server Configuration ---
    PORT: int = int(os.getenv("PORT", "5000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")

    # --- Database ---
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./shopeasy.db")

    # --- Session tokens ---
    JWT_SECRET: str = os.getenv("JWT_SECRET") or "dev-secret-change-me"
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))

    # --- Passwords ---
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_MAX_LENGTH: int = 128
    PASSWORD_HISTORY_LIMIT: int = int(os.getenv("PASSWORD_HISTORY_LIMIT", "5"))

    # --- Signup OTP and password reset ---
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    OTP_TTL_MINUTES: int = int(os.getenv("OTP_TTL_MINUTES", "10"))
    RESET_TOKEN_TTL_MINUTES: int = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "5"))
    # When true, forgot-password answers the same way for unknown and known emails
    RESET_HIDE_ACCOUNT_EXISTENCE: bool = _env_bool("RESET_HIDE_ACCOUNT_EXISTENCE", "false")

    # --- Catalog ---
    LOW_STOCK_THRESHOLD: int = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
    ORDER_NUMBER_ATTEMPTS: int = int(os.getenv("ORDER_NUMBER_ATTEMPTS", "5"))

    # --- Redis (token denylist, pending registrations) ---
    REDIS_URL: str = os.getenv("REDIS_URL", "")

    # --- Email ---
    EMAIL_ENABLED: bool = _env_bool("EMAIL_ENABLED", "false")
    MAIL_USERNAME: str = os.getenv("MAIL_USERNAME", "test@example.com")
    MAIL_PASSWORD: str = os.getenv("MAIL_PASSWORD", "password")
    MAIL_FROM: str = os.getenv("MAIL_FROM", "test@example.com")
    MAIL_FROM_NAME: str = os.getenv("MAIL_FROM_NAME", "ShopEasy")
    MAIL_PORT: int = int(os.getenv("MAIL_PORT", "587"))
    MAIL_SERVER: str = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_STARTTLS: bool = _env_bool("MAIL_STARTTLS", "true")
    MAIL_SSL_TLS: bool = _env_bool("MAIL_SSL_TLS", "false")

    # --- Rate limiting ---
    RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "true")

    # --- CORS ---
    CORS_ORIGINS: list = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
        if origin.strip()
    ]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


settings = Settings()

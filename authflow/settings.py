import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Identity service (account creation + credential sessions)
    IDENTITY_BASE_URL: str = os.getenv("IDENTITY_BASE_URL", "http://localhost:8080").rstrip("/")
    IDENTITY_API_KEY: str = os.getenv("IDENTITY_API_KEY", "")

    # Account-linking provider (Plaid-style REST)
    LINK_BASE_URL: str = os.getenv("LINK_BASE_URL", "https://sandbox.plaid.com").rstrip("/")
    LINK_CLIENT_ID: str = os.getenv("LINK_CLIENT_ID", "")
    LINK_SECRET: str = os.getenv("LINK_SECRET", "")
    LINK_CLIENT_NAME: str = os.getenv("LINK_CLIENT_NAME", "Horizon")
    LINK_PRODUCTS: str = os.getenv("LINK_PRODUCTS", "auth")
    LINK_COUNTRY_CODES: str = os.getenv("LINK_COUNTRY_CODES", "US")
    LINK_LANGUAGE: str = os.getenv("LINK_LANGUAGE", "en")

    # Outbound call budget shared by both clients
    SERVICE_TIMEOUT_SEC: float = float(os.getenv("SERVICE_TIMEOUT_SEC", "10.0"))
    SERVICE_MAX_RETRIES: int = int(os.getenv("SERVICE_MAX_RETRIES", "2"))

    # Form behaviour
    PASSWORD_MIN_LENGTH: int = int(os.getenv("PASSWORD_MIN_LENGTH", "6"))
    AUTH_HOME_PATH: str = os.getenv("AUTH_HOME_PATH", "/")
    # Live form instances are evicted after this many idle seconds
    FORM_IDLE_TTL_SEC: int = int(os.getenv("FORM_IDLE_TTL_SEC", "1800"))

    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"

settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from dotenv import load_dotenv

# Force load .env from project root
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./claims_crm.db"
    DATABASE_ECHO: bool = False

    # Session tokens (unset secret => random per-process secret)
    SESSION_SECRET: str | None = None
    SESSION_TTL_HOURS: int = 24
    SESSION_COOKIE_NAME: str = "auth-token"
    SESSION_COOKIE_SECURE: bool = False
    CREDENTIALS_FILE: str = "credentials.json"

    # Workflow
    RENEWAL_WINDOW_DAYS: int = 30
    CLAIM_NUMBER_ATTEMPTS: int = 5
    MAX_UPLOAD_MB: int = 20

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging
    LOG_FILE: str = "app.log"
    LOG_LEVEL: str = "INFO"

    # Defaults for the settings singleton
    COMPANY_NAME: str = "HIB Insurance"
    CONTACT_EMAIL: str = "support@hibinsurance.com"
    CONTACT_PHONE: str = "+91 1800 123 4567"

settings = Settings()

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Northline Booking"
    API_PREFIX: str = "/api"

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    MAX_BODY_BYTES: int = 1024 * 1024

    # Security
    ADMIN_PASSCODE: str = "admin123"

    # Storage
    DATA_FILE: str = "data/bookings.json"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/errors.log"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "Tripsplit API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Shared trip expenses and settlement engine"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "tripsplit"

    # Settlement engine
    # Exchange rate snapshots older than this are rejected; 0 disables the check
    RATE_MAX_AGE_HOURS: int = 24
    SETTLEMENT_ROUNDING: str = "ROUND_HALF_EVEN"
    SETTLEMENT_RESIDUAL_UNITS_PER_PARTICIPANT: int = 1

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()

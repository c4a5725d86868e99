from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database Settings
    database_url: str = "postgresql://localhost:5432/newsdrip"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_command_timeout: int = 60

    # Email Settings (AWS SES)
    aws_region: str = "us-east-1"
    from_email: str = "newsletter@example.com"
    from_name: str = "NewsDrip"
    support_email: str = "support@example.com"
    ses_configuration_set: Optional[str] = None

    # SMS Settings (Twilio)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_from_number: Optional[str] = None
    twilio_api_url: str = "https://api.twilio.com/2010-04-01"

    # Delivery tuning
    delivery_max_concurrency: int = 10
    delivery_timeout_seconds: float = 30.0

    # Subscribe endpoint throttling
    subscribe_rate_limit: int = 3
    subscribe_rate_window_seconds: int = 15 * 60

    # App Settings
    public_base_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:5173"
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    environment: str = "development"

    class Config:
        env_file = ".env"
        extra = "ignore"  # This line allows extra env vars without errors

settings = Settings()

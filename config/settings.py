"""
Configuration management using Pydantic Settings.
Loads telemetry configuration from environment variables with validation.
Read once at startup; there is no hot reload.
"""
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import Field

# Load .env file into os.environ so all nested BaseSettings pick up values
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)


class MetricsSettings(BaseSettings):
    """Remote ingestion endpoint, credentials and flush cadence"""
    url: str
    source: str = Field(default="jwt-pizza-service")
    user_id: str
    api_key: str
    flush_interval_seconds: float = Field(default=10.0, gt=0)
    push_timeout_seconds: float = Field(default=5.0, gt=0)
    cpu_sample_seconds: float = Field(default=0.1, ge=0)

    class Config:
        env_prefix = "METRICS_"


class RouteSettings(BaseSettings):
    """Request shapes the hooks recognize"""
    auth_path: str = Field(default="/api/auth")
    order_path: str = Field(default="/api/order")

    class Config:
        env_prefix = "ROUTE_"


class MonitoringSettings(BaseSettings):
    """Prometheus endpoint for the pipeline's own health"""
    metrics_port: int = Field(default=9090)
    metrics_server_enabled: bool = Field(default=False)

    class Config:
        env_prefix = ""


class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: str = Field(default="INFO")
    format: str = Field(default="json")

    class Config:
        env_prefix = "LOG_"


class Settings(BaseSettings):
    """Main settings aggregating all configuration sections"""
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    routes: RouteSettings = Field(default_factory=RouteSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        extra = "ignore"


# Singleton instance - import this in other modules
try:
    settings = Settings()
except Exception as e:
    # During testing or initial setup, settings might not be fully configured
    print(f"Warning: Could not load settings: {e}")
    settings = None

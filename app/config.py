import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with common settings."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # Status classification rule set: 'assignee', 'simple' or 'milestone'
    TRACKING_STATUS_RULES = os.environ.get("TRACKING_STATUS_RULES", "assignee")

    # Plan-date cascade: anchor stage and "stage:days" offsets
    TRACKING_ANCHOR_STAGE = os.environ.get("TRACKING_ANCHOR_STAGE", "1")
    TRACKING_PLAN_OFFSETS = os.environ.get("TRACKING_PLAN_OFFSETS", "2:7,3:10,4:12,5:14")

    # Assignee value marking a stage as not applicable
    TRACKING_NOT_APPLICABLE = os.environ.get("TRACKING_NOT_APPLICABLE", "N/A")

    # Timezone used to decide what "today" is
    TRACKING_TIMEZONE = os.environ.get("TRACKING_TIMEZONE", "Asia/Seoul")

    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


def get_config():
    """Get the appropriate configuration class based on environment variable.

    Environment is determined by FLASK_ENV or ENVIRONMENT variable:
    - 'local' or 'development' -> LocalConfig
    - 'sandbox' or 'staging' -> SandboxConfig
    - 'production' or 'prod' -> ProductionConfig

    Defaults to LocalConfig if not set.
    """
    env = (os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")).lower()

    if env in ["local", "development", "dev"]:
        return LocalConfig
    elif env in ["sandbox", "staging", "stage"]:
        return SandboxConfig
    elif env in ["production", "prod"]:
        return ProductionConfig
    else:
        # Default to local for safety
        return LocalConfig

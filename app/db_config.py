"""Database configuration and setup for different environments."""
import os


def get_database_engine_options():
    """Get database engine options for PostgreSQL connections."""
    from sqlalchemy.pool import QueuePool

    return {
        "pool_pre_ping": True,        # Detect and refresh dead connections before use
        "pool_recycle": 280,          # Recycle connections before managed-Postgres idle timeouts
        "pool_size": 5,               # Dashboard reads are short; keep the pool modest
        "max_overflow": 10,           # Allow bursts when several planners save at once
        "pool_timeout": 30,           # Wait up to 30s for a connection before raising
        "poolclass": QueuePool,
        "connect_args": {
            "sslmode": "require",
            "connect_timeout": 10,    # Fail fast if DB can't be reached
            "application_name": "stage_tracker",
        },
    }


def normalize_database_url(url):
    """SQLAlchemy expects postgresql://, hosted providers often hand out postgres://."""
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_local_database_config():
    """Get database configuration for local development.

    Returns:
        tuple: (database_uri, engine_options)
    """
    database_uri = os.environ.get("LOCAL_DATABASE_URL") or "sqlite:///tracker.sqlite"
    # SQLite doesn't need engine options
    return normalize_database_url(database_uri), None


def get_remote_database_config(environment):
    """Get database configuration for sandbox or production.

    Looks up SANDBOX_DATABASE_URL / PRODUCTION_DATABASE_URL, then DATABASE_URL.

    Returns:
        tuple: (database_uri, engine_options)

    Raises:
        ValueError: If no database URL is configured
    """
    specific_var = f"{environment.upper()}_DATABASE_URL"
    database_url = os.environ.get(specific_var) or os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError(f"{specific_var} or DATABASE_URL must be set for {environment} environment")

    return normalize_database_url(database_url), get_database_engine_options()


def get_database_config(environment=None):
    """Get database configuration based on environment.

    Args:
        environment: Environment name ('local', 'sandbox', 'production')
                    If None, will be determined from ENVIRONMENT or FLASK_ENV env vars.

    Returns:
        tuple: (database_uri, engine_options)
    """
    if environment is None:
        environment = os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")
    environment = environment.lower()

    if environment in ["sandbox", "staging", "stage"]:
        return get_remote_database_config("sandbox")
    elif environment in ["production", "prod"]:
        return get_remote_database_config("production")
    # Default to local for safety
    return get_local_database_config()


def configure_database(app, environment=None):
    """Configure database settings for the Flask app.

    Sets SQLALCHEMY_DATABASE_URI and SQLALCHEMY_ENGINE_OPTIONS on the app
    config based on the current environment.
    """
    database_uri, engine_options = get_database_config(environment)

    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SQLALCHEMY_ECHO"] = False  # Set to True for SQL query debugging

    if engine_options:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

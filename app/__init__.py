import os

from flask import Flask, jsonify
from flask_cors import CORS

from app.logging_config import configure_logging, get_logger
from app.models import db

# Configure logging
logger = configure_logging(
    log_level=os.environ.get("LOG_LEVEL", "INFO"),
    log_file=os.environ.get("LOG_FILE"),
)


def create_app(test_config=None):
    """
    Build the Flask application.

    Args:
        test_config: Optional mapping applied on top of the environment config,
                     before the database is bound (tests pass an in-memory URI here).
    """
    # Import config after dotenv is loaded
    from app.config import get_config
    from app.db_config import configure_database
    from app.tracking import tracking_bp

    # Get the appropriate config class based on environment
    config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Configure database separately
    configure_database(app)

    if test_config:
        app.config.update(test_config)

    # Log the environment being used
    logger.info(f"Starting application in {config_class.ENV} environment")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')[:50]}...")

    # Get allowed origins from environment variable
    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "OPTIONS"])

    db.init_app(app)

    app.register_blueprint(tracking_bp)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "environment": config_class.ENV}), 200

    return app

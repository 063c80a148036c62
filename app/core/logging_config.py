import logging
import sys

def setup_logging():
    """
    Configure logging for the application.

    Logs go to stdout with timestamps, levels and logger names so they can be
    collected by the container runtime.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Reduce SQLAlchemy and HTTP client noise in logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger("routeopt")


# Create global logger instance
logger = setup_logging()

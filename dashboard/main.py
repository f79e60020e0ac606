"""Main entry point for the agent dashboard server."""

import uvicorn
from dotenv import load_dotenv

from .api import create_fastapi_app
from .app import Application
from .config import PROJECT_ROOT, Settings
from .logging_config import get_logger, setup_logging


def main():
    """Run the application."""
    load_dotenv(PROJECT_ROOT / ".env")
    setup_logging()
    logger = get_logger(__name__)

    # Get configuration from environment
    settings = Settings.from_env()
    logger.info(
        "Serving dashboard on http://%s:%s (%s realtime)",
        settings.api_host,
        settings.api_port,
        settings.realtime,
    )

    # Create FastAPI app
    app = create_fastapi_app(Application(settings))

    # Run with uvicorn
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()

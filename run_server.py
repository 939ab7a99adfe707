#!/usr/bin/env python
"""
News API Server Runner.

Usage:
    python run_server.py

Or with PM2:
    pm2 start run_server.py --interpreter python
"""

import logging
import os
import sys

import uvicorn

from core.config import get_config
from core.logging_utils import setup_logging
from news_api.app import create_app


logger = logging.getLogger(__name__)


def main():
    """Run the news API server."""
    config = get_config()
    setup_logging(config.log_level, config.log_format)
    reload = os.getenv("ENVIRONMENT", "production") == "development"

    logger.info(f"Starting News API on {config.server_host}:{config.server_port}")
    logger.info(f"Config: {config.to_dict()}")

    try:
        if reload:
            uvicorn.run(
                "news_api.app:create_app",
                factory=True,
                host=config.server_host,
                port=config.server_port,
                reload=True,
                log_level=config.log_level.lower(),
            )
        else:
            uvicorn.run(
                create_app(config),
                host=config.server_host,
                port=config.server_port,
                log_level=config.log_level.lower(),
                access_log=True,
            )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

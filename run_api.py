#!/usr/bin/env python3
"""
Script to run the Library Book API server.
"""

import sys

import uvicorn

from library_api.config import config
from library_api.main import create_app
from library_api.secrets import SecretResolutionError, resolve_connection_uri
from utilities.logger import get_logger, setup_logging


def main():
    """Resolve the database secret, then run the API server."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        debug=config.debug
    )
    logger = get_logger(__name__)

    try:
        connection_uri = resolve_connection_uri(config)
    except SecretResolutionError as e:
        logger.critical("Could not load the database connection string", error=str(e))
        sys.exit(1)

    logger.info(
        "Starting Library Book API server",
        host=config.host,
        port=config.port,
        database=config.mongodb_database,
        debug=config.debug
    )

    uvicorn.run(
        create_app(config, connection_uri=connection_uri),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Lending Ledger Entry Point

Starts the FastAPI server with host, port and logging taken from LEDGER_*
environment settings.
"""

import sys

import uvicorn

from loan_ledger.config import get_config
from loan_ledger.logging_config import setup_logging


def run_server(host: str, port: int, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "loan_ledger.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, config.log_format, config.log_file)
    logger.info("Starting lending ledger on %s:%s (database: %s)",
                config.api_host, config.api_port,
                config.database_path if config.use_sqlite else "in-memory")

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        logger.info("Shutting down lending ledger")
    except Exception as e:
        logger.error("Error starting server: %s", e)
        sys.exit(1)

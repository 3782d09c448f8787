"""
Main entrypoint: create tables, then serve the FastAPI app with uvicorn.

Env: SATSTACK_DB_URL / DATABASE_URL or SATSTACK_DB_PATH, API_HOST, API_PORT, LOG_LEVEL.
Scheduled syncs: run `python -m backend_satstack.tools.sync_wallets` from cron.
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_satstack.satstack_logging import get_logger

logger = get_logger("main")


def main() -> None:
    api_host = os.getenv("API_HOST", "0.0.0.0").strip()
    api_port = int(os.getenv("API_PORT", "8000").strip() or "8000")

    from backend_satstack.database import init_db

    init_db()

    from backend_satstack.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=api_host, port=api_port)
    uvicorn.run(app, host=api_host, port=api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()

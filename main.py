"""
Main entrypoint: FastAPI server whose lifespan bootstraps the ledger runtime.

Startup is sequential: Redis (optional) -> local validator probe -> cluster
selection -> service keypair. A missing production variable or a keypair
that fails validation aborts the lifespan, and uvicorn exits without serving.

Env: APP_ENV, REDIS_URL, SERVICE_KEYPAIR_PATH, SERVICE_WALLET_ADDRESS,
LOCAL_VALIDATOR_PORT, API_HOST, API_PORT, LOG_LEVEL, etc.
"""

import os

from backend_archivenet.archivenet_logging import get_logger
from backend_archivenet.config.env import load_archivenet_env

logger = get_logger("main")


def main() -> None:
    """Run the API; the ledger bootstrap happens in the app lifespan."""
    load_archivenet_env()
    api_host = os.getenv("API_HOST", "0.0.0.0").strip()
    api_port = int(os.getenv("API_PORT", "3000").strip() or "3000")

    from backend_archivenet.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=api_host, port=api_port)
    uvicorn.run(app, host=api_host, port=api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()

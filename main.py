"""
Main entrypoint: FastAPI server for related-account analysis.

Env: SOLANA_RPC_URL / HELIUS_RPC_URL / HELIUS_API_KEY, BUBBLES_PROVIDER_TIER,
BUBBLES_CACHE_TTL_SEC, BUBBLES_CACHE_MAX_ENTRIES, API_HOST, API_PORT, LOG_LEVEL, etc.

Equivalent: uvicorn backend_bubbles.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_bubbles.bubbles_logging import get_logger

logger = get_logger("main")


def main() -> None:
    from backend_bubbles.config.env import mask_rpc_url
    from backend_bubbles.config.settings import get_settings

    settings = get_settings()
    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        rpc_url=mask_rpc_url(settings.rpc_url),
        tier=settings.provider_tier,
    )

    from backend_bubbles.api_server.app import app
    import uvicorn

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()

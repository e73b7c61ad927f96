"""
findmyanime.__main__ — Entry point for ``python -m findmyanime``
================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Serve the FastAPI app with uvicorn (tables are created in its lifespan).
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from findmyanime.config import load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("findmyanime")


def main() -> None:
    """Bootstrap and run the FindMyAnime backend."""
    load_dotenv()

    cfg = load_config()
    logger.info("Config loaded — %s on port %d", cfg.site_name, cfg.port)

    uvicorn.run(
        "findmyanime.api.main:app",
        host="0.0.0.0",
        port=cfg.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
        log_config=None,
    )


if __name__ == "__main__":
    main()

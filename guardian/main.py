"""
Start the FocusGuardian service.

Usage:
    python -m guardian.main
    uvicorn guardian.api.app:app --host 127.0.0.1 --port 8765 --reload
"""

import logging

import uvicorn

from .config import config


def main():
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    )
    uvicorn.run(
        "guardian.api.app:app",
        host=config.api_host,
        port=config.api_port,
        reload=False,
        log_level=config.log_level,
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Message Board Server
Serves the board API and the sample front end
"""
import logging
import os
import sys
import uvicorn
from config import DEFAULT_HOST, DEFAULT_PORT, LOG_LEVEL

logger = logging.getLogger("run_server")


def main():
    # Change to the directory containing this script so views/ and public/ resolve
    script_dir = os.path.dirname(os.path.abspath(__file__))
    os.chdir(script_dir)

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info("Starting message board server on %s:%s", DEFAULT_HOST, DEFAULT_PORT)
    logger.info("API endpoints under /api/threads/{board} and /api/replies/{board}")

    try:
        from app import app

        uvicorn.run(
            app,
            host=DEFAULT_HOST,
            port=DEFAULT_PORT,
            reload=False,
            access_log=True,
            log_level=LOG_LEVEL.lower()
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Error starting server")
        sys.exit(1)


if __name__ == "__main__":
    main()

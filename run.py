#!/usr/bin/env python3
"""
Entry point for the Room Orchestrator API.

Usage:
    python run.py

Environment Variables:
    FLASK_ENV: development or production (default: development)
    PORT: Port to run on (default: 8080)
    LOG_LEVEL: Logging level (default: INFO)
    ROOMS_*: Room settings, see rooms/config.py
"""
import logging
import os
import sys


def run_orchestrator():
    """Run the room orchestrator API."""
    from rooms.app import create_app
    from rooms.errors import EngineConnectionError

    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logger = logging.getLogger('rooms')

    try:
        app = create_app()
    except EngineConnectionError as e:
        logger.error(str(e))
        sys.exit(1)

    port = int(os.getenv('PORT', 8080))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    logger.info(f"Starting Room Orchestrator on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=debug)


if __name__ == '__main__':
    run_orchestrator()

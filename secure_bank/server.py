"""
Server entry point
"""

import uvicorn

from .api import create_app
from .banking import BankingSystem
from .config import get_config
from .logging_config import setup_logging


def run_server(host: str = None, port: int = None, debug: bool = False):
    """Run the FastAPI server with storage and logging taken from configuration"""
    config = get_config()
    setup_logging(
        level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file
    )

    app = create_app(BankingSystem(config))
    uvicorn.run(
        app,
        host=host or config.api_host,
        port=port or config.api_port,
        log_level="debug" if debug else config.log_level.lower()
    )

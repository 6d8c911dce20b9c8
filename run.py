#!/usr/bin/env python3
"""
SecureBank Entry Point

Starts the FastAPI server on the configured host and port (8090 by default).
"""

import sys

from secure_bank.config import get_config
from secure_bank.server import run_server


if __name__ == "__main__":
    config = get_config()
    print("Starting SecureBank...")
    print(f"Storage: {config.storage_backend} ({config.data_path})")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()

    try:
        run_server(debug="--debug" in sys.argv)
    except KeyboardInterrupt:
        print("\nShutting down SecureBank...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)

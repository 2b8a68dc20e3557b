#!/usr/bin/env python3
"""
UPI Banking Entry Point

Starts the FastAPI server on the configured host and port.
"""

import sys

from upi_banking.api import run_server
from upi_banking.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting UPI Banking backend...")
    print(f"Storage backend: {config.storage_backend}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        print("\nShutting down UPI Banking backend...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)

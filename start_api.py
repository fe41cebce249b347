#!/usr/bin/env python3
"""
Startup script for the Ledger Cover Studio FastAPI application.

This script provides a simple way to start the FastAPI server with proper configuration.
"""

import os
import sys
import uvicorn

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

def main():
    """Start the FastAPI application."""
    try:
        from ledger_studio.config import ConfigurationError, get_settings

        settings = get_settings()

        print(f"🚀 Starting Ledger Cover Studio API on {settings.host}:{settings.port}")
        print(f"📚 API Documentation: http://{settings.host}:{settings.port}/docs")
        print(f"🔍 Health Check: http://{settings.host}:{settings.port}/health")

        uvicorn.run(
            "ledger_studio.api.main:app",
            host=settings.host,
            port=settings.port,
            reload=settings.debug,
            log_level="info" if not settings.debug else "debug",
            access_log=True,
        )

    except ImportError as e:
        print(f"❌ Failed to import FastAPI app: {e}")
        print("Make sure all dependencies are installed and the src directory is accessible.")
        sys.exit(1)
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Spendboard API Startup Script

This script starts the Spendboard FastAPI server for local development.
"""

import sys
from pathlib import Path

import uvicorn


def main():
    """Start the Spendboard API server."""
    print("Starting Spendboard API Server...")
    print("Documentation will be available at:")
    print("   Swagger UI:  http://localhost:8000/docs")
    print("   ReDoc:       http://localhost:8000/redoc")
    print("")

    # Check for environment file
    env_file = Path(".env")
    if not env_file.exists():
        print("WARNING: No .env file found!")
        print("   Create a .env file with at least:")
        print("   DATABASE_URL=sqlite:///./spendboard.db")
        print("")

    try:
        uvicorn.run(
            "spendboard.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            reload_dirs=["spendboard"],
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\nShutting down Spendboard API server...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

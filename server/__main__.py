"""
FastAPI Server Main Entry Point

Run this module to start the diagnostics server:
    DISCOVERY_LOADER=mybundle.runtime:loader python -m server

Or with uvicorn:
    uvicorn server.app:app --port 8000
"""
import os
import uvicorn
from dotenv import load_dotenv


def main() -> None:
    # Settings are read when server.app is imported, so .env must load first
    load_dotenv()
    uvicorn.run(
        "server.app:app",
        host=os.getenv("SERVER_HOST", "127.0.0.1"),
        port=int(os.getenv("SERVER_PORT", "8000")),
        log_level=os.getenv("DISCOVERY_LOG_LEVEL", "info").lower(),
    )


if __name__ == '__main__':
    main()

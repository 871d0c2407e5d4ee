#!/usr/bin/env python3
"""
One-click dev runner for the bridge.
Usage: python scripts/dev.py [--reload]
"""

import logging
import socket
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from server.config import Settings


def port_in_use(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(("127.0.0.1", port)) == 0


def main():
    load_dotenv(ROOT / ".env")
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if port_in_use(settings.port):
        print(f"Port {settings.port} is in use. Stop the process or set PORT=<port>")
        sys.exit(1)

    print()
    print(f"  Bridge listening on http://localhost:{settings.port}")
    print(f"  Model:  {settings.ollama_model} at {settings.ollama_url}")
    print()

    uvicorn.run(
        "server.app:app",
        host="0.0.0.0",
        port=settings.port,
        reload="--reload" in sys.argv[1:],
        app_dir=str(ROOT),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Startup script for the workflow engine API server
"""

import uvicorn

from core.config import settings
from core.logging_config import configure_logging_from_settings

if __name__ == "__main__":
    configure_logging_from_settings()

    print(f"Starting workflow engine API on {settings.api_host}:{settings.api_port}")
    print(f"API documentation available at http://localhost:{settings.api_port}/docs")

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )

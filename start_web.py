#!/usr/bin/env python3
"""Start the modmap web API."""

import uvicorn

from modmap.config import get_settings
from modmap.logging_config import setup_logging

if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    print("Starting modmap API...")
    print("URL: http://localhost:8000")
    print("API docs: http://localhost:8000/docs")
    print()

    uvicorn.run(
        "apps.web.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=["apps", "modmap"],
        log_config=None,
    )

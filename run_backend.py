#!/usr/bin/env python
"""Script to run the todo API server."""
import uvicorn

from todo_api import config
from todo_api.logging_setup import setup_logging

if __name__ == "__main__":
    setup_logging(config.LOG_LEVEL)
    uvicorn.run(
        "todo_api.main:create_app",
        factory=True,
        host=config.HOST,
        port=config.PORT,
        log_config=None,
    )

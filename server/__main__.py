"""
Run the API under uvicorn on 0.0.0.0:$PORT.
"""
from __future__ import annotations

import uvicorn

from server.config import get_settings, setup_logging


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "server.api:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.reload,
    )


if __name__ == "__main__":
    main()

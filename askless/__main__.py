"""Run the API server: python -m askless"""

import uvicorn

from .config import settings


def main():
    uvicorn.run(
        "askless.main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

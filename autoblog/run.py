"""Run the FastAPI server."""

import uvicorn

from autoblog.config import settings


def main():
    """Entry point for the API server."""
    uvicorn.run(
        "autoblog.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
    )


if __name__ == "__main__":
    main()

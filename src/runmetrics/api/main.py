"""FastAPI application factory."""
from fastapi import FastAPI

from runmetrics import __version__
from runmetrics.api.routes import uploads


def create_app() -> FastAPI:
    """Build and return the FastAPI app."""

    app = FastAPI(
        title="runmetrics API",
        description="FIT / TCX / GPX activity parsing",
        version=__version__,
    )

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    app.include_router(uploads.router, prefix="/activities", tags=["activities"])

    return app


# Module-level app instance for uvicorn
app = create_app()

"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from depstat import __version__
from depstat.web.api_analysis import router as analysis_router
from depstat.web.api_diff import router as diff_router


def create_app() -> FastAPI:
    app = FastAPI(title="depstat", version=__version__)
    app.include_router(analysis_router)
    app.include_router(diff_router)
    return app

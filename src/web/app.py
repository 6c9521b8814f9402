"""
FastAPI application factory for the sign detector.

Routes:
- /api/status -> detection status for polling consumers
- /api/labels -> configured gesture labels
- /api/detection/{start,stop,toggle} -> detection commands
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pipeline.detection_loop import DetectionLoop
from runtime.context import DetectionContext
from .routes import api


def create_app(ctx: DetectionContext, loop: DetectionLoop) -> FastAPI:
    """Create the FastAPI app bound to one detection context and loop."""
    app = FastAPI(
        title="Sign Detector",
        version="0.1.0",
        description="Real-time sign gesture detection",
    )

    # CORS for development (Vite dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.ctx = ctx
    app.state.loop = loop
    app.include_router(api.router, prefix="/api")
    return app

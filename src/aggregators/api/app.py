"""FastAPI application entrypoint."""

from __future__ import annotations

from fastapi import FastAPI

from aggregators.api.routes import router


def create_app() -> FastAPI:
    app = FastAPI(title="Aggregators", description="Paginated article listing aggregator API")
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()

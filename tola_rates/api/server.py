"""FastAPI application serving live/stale prices and the rolling history.

Run locally:
    uvicorn tola_rates.api.server:create_app --factory --port 3003
"""

from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tola_rates import TolaRates
from tola_rates.errors import PersistenceFailure, ServiceUnavailable
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

HISTORY_WINDOWS = (7, 30)


def create_app(rates: TolaRates | None = None) -> FastAPI:
    """Build the app around ``rates`` (configured from the environment when omitted)."""

    facade = rates or TolaRates.from_env()
    app = FastAPI(title="Tola Rates API")
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"])
    app.state.rates = facade

    @app.exception_handler(ServiceUnavailable)
    async def _service_unavailable(_request, exc: ServiceUnavailable) -> JSONResponse:
        return JSONResponse(status_code=503, content={"status": "error", "message": exc.message})

    @app.get("/prices")
    def prices() -> dict:
        return facade.prices()

    @app.get("/market/history/{days}")
    def history(days: int) -> dict:
        if days not in HISTORY_WINDOWS:
            raise HTTPException(status_code=404, detail="Supported windows are 7 and 30 days")
        try:
            return facade.history(days)
        except PersistenceFailure as exc:
            LOGGER.error("History read failed: %s", exc)
            raise ServiceUnavailable() from exc

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "backend": facade.backend}

    return app


__all__ = ["create_app", "HISTORY_WINDOWS"]

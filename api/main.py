"""SafeZone API - FastAPI service for the alert presentation layer.

Exposes one alert session as JSON: the current alert, loading and error
state, the location badge, the selectable catalog, and the two user
actions (select a location, simulate an event).
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from safezone.core.catalog import HazardSite
from safezone.session import AlertSession, SessionView, build_session
from safezone.shell.config_loader import load_config

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


# ===== Response Models =====

class CoordinateOut(BaseModel):
    latitude: float
    longitude: float


class SiteOut(BaseModel):
    name: str
    latitude: float
    longitude: float
    is_hazardous: bool


class AlertOut(BaseModel):
    kind: str
    message: str


class StateOut(BaseModel):
    alert: AlertOut
    is_loading: bool
    error: str | None = None
    current_location: CoordinateOut | None = None
    current_location_display: str
    selected_location_name: str | None = None
    side_notification_visible: bool
    side_notification_title: str | None = None
    side_notification_message: str | None = None


class SimulateOut(BaseModel):
    triggered: bool
    state: StateOut


# ===== Helpers =====

def _site_to_model(site: HazardSite) -> SiteOut:
    return SiteOut(
        name=site.name,
        latitude=site.coordinate.latitude,
        longitude=site.coordinate.longitude,
        is_hazardous=site.is_hazardous,
    )


def _view_to_model(view: SessionView) -> StateOut:
    location = None
    if view.current_location is not None:
        location = CoordinateOut(
            latitude=view.current_location.coordinate.latitude,
            longitude=view.current_location.coordinate.longitude,
        )

    return StateOut(
        alert=AlertOut(kind=view.alert.kind.value, message=view.alert.message),
        is_loading=view.is_loading,
        error=view.error,
        current_location=location,
        current_location_display=view.current_location_display,
        selected_location_name=view.selected_location_name,
        side_notification_visible=view.side_notification_visible,
        side_notification_title=view.side_notification_title,
        side_notification_message=view.side_notification_message,
    )


def _default_session_factory() -> AlertSession:
    return build_session(load_config())


# ===== App =====

def create_app(session_factory: Callable[[], AlertSession] = _default_session_factory) -> FastAPI:
    """Create the API app.

    Args:
        session_factory: Builds the alert session when the app starts

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        session = session_factory()
        await session.start()
        app.state.session = session
        logger.info("Alert session started")
        try:
            yield
        finally:
            await session.close()

    app = FastAPI(
        title="SafeZone API",
        description="Location hazard and live event alerts",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:9002",
        ],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    def _session(request: Request) -> AlertSession:
        return request.app.state.session

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        return {"status": "healthy"}

    @app.get("/api-state", response_model=StateOut)
    async def get_state(request: Request):
        """Current alert and location state."""
        return _view_to_model(_session(request).view())

    @app.get("/api-locations", response_model=list[SiteOut])
    async def get_locations(request: Request):
        """Selectable catalog sites, in catalog order."""
        return [_site_to_model(site) for site in _session(request).catalog.sites]

    @app.post("/api-location/{name}", response_model=StateOut)
    async def select_location(name: str, request: Request):
        """Manually select a catalog site."""
        session = _session(request)
        try:
            session.select_location(name)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Location '{name}' not found")
        return _view_to_model(session.view())

    @app.post("/api-simulate", response_model=SimulateOut)
    async def simulate_event(request: Request):
        """Raise a local event at the current location."""
        session = _session(request)
        triggered = session.simulate_event()
        if not triggered:
            raise HTTPException(status_code=409, detail=session.view().error)
        return SimulateOut(triggered=True, state=_view_to_model(session.view()))

    return app


app = create_app()

"""
FastAPI boundary for the presentation surface.

Provides:
    - REST endpoints exposing live alert state, module cards, the sensor
      snapshot with drafts, and the paginated alert log
    - Intent endpoints (dismiss, acknowledge, edit draft, save, filter,
      search, focus, permission) mapped onto plain component calls
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from alert_console.core.formatting import format_timestamp
from alert_console.errors import ValidationError

if TYPE_CHECKING:
    from alert_console.service import AlertConsole

logger = logging.getLogger(__name__)


class DraftUpdate(BaseModel):
    field: str
    value: str = ""


class FocusUpdate(BaseModel):
    has_focus: bool = Field(alias="hasFocus")

    model_config = ConfigDict(populate_by_name=True)


class FilterUpdate(BaseModel):
    sensor_id: Optional[str] = Field(None, alias="sensorId")
    digital_module_id: Optional[str] = Field(None, alias="digitalModuleId")
    status: Optional[str] = None
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


def create_console_app(console: "AlertConsole") -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        console: The console whose state is exposed

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Industrial Alert Console",
        description="Live alert state, sensor thresholds and alert log",
        version="1.0.0",
    )

    # =========================================================================
    # Live state
    # =========================================================================

    @app.get("/api/status")
    async def get_status():
        return console.status()

    @app.get("/api/alerts")
    async def get_alerts(limit: int = 50):
        events = console.aggregator.recent(limit)
        return {
            "alerts": [
                {**e.to_dict(), "startedAtDisplay": format_timestamp(e.started_at)}
                for e in events
            ],
            "unread": console.aggregator.unread_alerts,
            "sensorFlags": dict(console.aggregator.sensor_flags),
            "moduleFlags": dict(console.aggregator.module_flags),
        }

    @app.post("/api/alerts/{alert_id}/dismiss")
    async def dismiss_alert(alert_id: str):
        console.aggregator.dismiss(alert_id)
        return {"dismissed": alert_id, "remaining": len(console.aggregator.history)}

    @app.post("/api/notifications/open")
    async def open_notifications():
        console.aggregator.acknowledge()
        return {"unread": console.aggregator.unread_alerts}

    @app.post("/api/notifications/permission")
    async def request_permission():
        permission = console.dispatcher.request_permission()
        return {"permission": permission.value}

    @app.post("/api/focus")
    async def set_focus(update: FocusUpdate):
        console.focus.has_focus = update.has_focus
        return {"hasFocus": console.focus.has_focus}

    @app.get("/api/toasts")
    async def get_toasts():
        return {"toasts": [t.to_dict() for t in console.toasts.items()]}

    @app.get("/api/modules")
    async def get_modules(page: int = 1):
        result = console.modules.page(page)
        return {
            "modules": [card.to_dict() for card in result.items],
            "page": result.number,
            "totalPages": result.total_pages,
        }

    # =========================================================================
    # Sensor snapshot
    # =========================================================================

    @app.get("/api/sensors")
    async def get_sensors(page: Optional[int] = None):
        editor = console.editor
        result = editor.page(page) if page is not None else editor.current()
        return {
            "sensors": [
                {
                    **sensor.to_dict(),
                    "draft": editor.draft(sensor.sensor_id).to_dict(),
                    "canSave": editor.can_save(sensor.sensor_id),
                    "alerting": console.aggregator.sensor_has_active_alert(sensor.sensor_id),
                }
                for sensor in result.items
            ],
            "page": result.number,
            "totalPages": result.total_pages,
            "loading": editor.loading,
        }

    @app.post("/api/sensors/reload")
    async def reload_sensors():
        loaded = await console.editor.load()
        return {"loaded": loaded, "count": len(console.editor.sensors)}

    @app.put("/api/sensors/{sensor_id}/draft")
    async def update_draft(sensor_id: str, update: DraftUpdate):
        try:
            draft = console.editor.set_draft(sensor_id, update.field, update.value)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"sensorId": sensor_id, "draft": draft.to_dict()}

    @app.post("/api/sensors/{sensor_id}/save")
    async def save_thresholds(sensor_id: str):
        if not console.editor.can_save(sensor_id):
            raise HTTPException(status_code=409, detail="A save is already in progress")
        try:
            saved = await console.editor.save(sensor_id)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return {"sensorId": sensor_id, "saved": saved}

    # =========================================================================
    # Alert log
    # =========================================================================

    @app.get("/api/alert-log")
    async def get_alert_log(page: Optional[int] = None):
        log = console.alert_log
        result = log.page(page) if page is not None else log.current()
        return {
            "records": [
                {**r.to_dict(), "startedAtDisplay": format_timestamp(r.started_at)}
                for r in result.items
            ],
            "page": result.number,
            "totalPages": result.total_pages,
            "total": result.total_items,
            "filter": log.filter.to_dict(),
            "loading": log.loading,
        }

    @app.post("/api/alert-log/search")
    async def search_alert_log(update: Optional[FilterUpdate] = None):
        log = console.alert_log
        if update is not None:
            log.set_filter(**update.model_dump(by_alias=True, exclude_none=True))
        await log.search()
        return {
            "total": len(log.results),
            "totalPages": log.total_pages,
            "filter": log.filter.to_dict(),
            "error": str(log.last_error) if log.last_error else None,
        }

    return app

"""
============================================================================
UPTIME WATCH - HTTP API
============================================================================
aiohttp JSON surface over the store and the scheduler.

Routes
------
GET    /health                          liveness + database check
GET    /api/targets                     all targets, newest first
POST   /api/targets                     register {name, url, checkInterval?}
GET    /api/targets/{id}                one target
PUT    /api/targets/{id}                partial update
DELETE /api/targets/{id}                delete (check history goes with it)
GET    /api/targets/{id}/checks?limit=  check history, newest first
GET    /api/monitor/status              in-flight flag, next sweep, summary
GET    /api/monitor/down?hours=         targets down within the window
POST   /api/monitor/check               {"targetId": id} or {} for all

Errors map to 400 (invalid input), 404 (unknown target), 409 (duplicate
URL) and 500 (anything else), always as {"error": "<message>"}.
============================================================================
"""

import json
import time
from typing import Any, Dict, Optional

from aiohttp import web

from config.constants import Defaults, Limits
from config.settings import ApiSettings, MonitoringSettings
from database.repositories import TargetRepository
from exceptions import (
    DuplicateTargetError,
    TargetNotFoundError,
    UptimeWatchException,
    ValidationException,
)
from monitoring.scheduler import MonitoringScheduler
from utils.helpers import TimeHelper
from utils.logger import get_logger
from utils.validators import DataValidator


logger = get_logger("ApiServer")

# Request body keys accepted for target updates, camelCase or snake_case
_UPDATE_KEYS = {
    "name": "name",
    "url": "url",
    "is_active": "is_active",
    "isActive": "is_active",
    "check_interval": "check_interval",
    "checkInterval": "check_interval",
}


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Translate domain exceptions into JSON error responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValidationException as e:
        return _error(e.user_message(), 400)
    except TargetNotFoundError as e:
        return _error(e.user_message(), 404)
    except DuplicateTargetError as e:
        return _error(e.user_message(), 409)
    except UptimeWatchException as e:
        logger.error(f"[API] {request.method} {request.path} failed: {e.log_format()}")
        return _error(e.user_message(), 500)
    except Exception as e:
        logger.opt(exception=e).error(f"[API] {request.method} {request.path} failed: {e}")
        return _error("Internal server error", 500)


class ApiServer:
    """
    aiohttp application serving the monitoring API.

    Attributes
    ----------
    app : aiohttp.web.Application
    _runner : aiohttp.web.AppRunner
    _site : aiohttp.web.TCPSite
    _start_time : float         : epoch seconds when the server started
    _request_count : int        : total requests served
    """

    def __init__(
        self,
        settings: ApiSettings,
        repository: TargetRepository,
        scheduler: MonitoringScheduler,
        monitoring: Optional[MonitoringSettings] = None,
        app_name: str = "Uptime Watch",
        app_version: str = "1.0.0",
    ):
        self.settings = settings
        self.repository = repository
        self.scheduler = scheduler
        self.monitoring = monitoring or MonitoringSettings()
        self.app_name = app_name
        self.app_version = app_version

        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._start_time: float = time.time()
        self._request_count: int = 0

        self.app = self._build_app()

    def _build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._count_requests, error_middleware])

        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/api/targets", self._handle_list_targets)
        app.router.add_post("/api/targets", self._handle_create_target)
        app.router.add_get(r"/api/targets/{id}", self._handle_get_target)
        app.router.add_put(r"/api/targets/{id}", self._handle_update_target)
        app.router.add_delete(r"/api/targets/{id}", self._handle_delete_target)
        app.router.add_get(r"/api/targets/{id}/checks", self._handle_list_checks)
        app.router.add_get("/api/monitor/status", self._handle_monitor_status)
        app.router.add_get("/api/monitor/down", self._handle_recent_down)
        app.router.add_post("/api/monitor/check", self._handle_manual_check)
        return app

    async def start(self) -> None:
        """Bind and start serving."""
        self._start_time = time.time()
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.settings.host, self.settings.port)
        await self._site.start()
        logger.info(f"✓ ApiServer listening on {self.settings.host}:{self.settings.port}")

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
        logger.info("✓ ApiServer stopped")

    @web.middleware
    async def _count_requests(self, request: web.Request, handler) -> web.StreamResponse:
        self._request_count += 1
        return await handler(request)

    # ------------------------------------------------------------------
    # REQUEST HELPERS
    # ------------------------------------------------------------------

    @staticmethod
    async def _read_json(request: web.Request, required: bool = True) -> Dict[str, Any]:
        if not request.body_exists:
            if required:
                raise ValidationException("Request body is required")
            return {}

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationException("Invalid JSON body", cause=e)

        if body is None and not required:
            return {}
        if not isinstance(body, dict):
            raise ValidationException("Request body must be a JSON object")
        return body

    @staticmethod
    def _target_id(request: web.Request) -> int:
        return DataValidator.parse_target_id(request.match_info["id"])

    @staticmethod
    def _int_query(request: web.Request, key: str, default: int, low: int, high: int) -> int:
        raw = request.query.get(key)
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except ValueError:
            raise ValidationException(f"'{key}' must be an integer", field=key, value=raw)
        if not low <= value <= high:
            raise ValidationException(f"'{key}' must be between {low} and {high}", field=key, value=raw)
        return value

    async def _require_target(self, target_id: int):
        target = await self.repository.get_by_id(target_id)
        if target is None:
            raise TargetNotFoundError(target_id)
        return target

    # ------------------------------------------------------------------
    # ROUTE HANDLERS
    # ------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET /health: liveness plus a database round-trip."""
        uptime_seconds = time.time() - self._start_time
        database_ok = await self.repository.db.check_connection()

        health = {
            "status": "healthy" if database_ok else "degraded",
            "database": "connected" if database_ok else "unavailable",
            "uptime_seconds": round(uptime_seconds, 1),
            "uptime_human": TimeHelper.seconds_to_human_readable(int(uptime_seconds)),
            "requests_served": self._request_count,
            "timestamp": TimeHelper.get_utc_now().isoformat(),
            "app_name": self.app_name,
            "app_version": self.app_version,
        }
        return web.json_response(health, status=200 if database_ok else 503)

    async def _handle_list_targets(self, request: web.Request) -> web.Response:
        targets = await self.repository.list_all()
        return web.json_response({"targets": [target.to_dict() for target in targets]})

    async def _handle_create_target(self, request: web.Request) -> web.Response:
        body = await self._read_json(request)
        interval = body.get("checkInterval", body.get("check_interval"))

        target = await self.repository.create_target(
            name=body.get("name"),
            url=body.get("url"),
            check_interval=interval,
        )
        return web.json_response({"target": target.to_dict()}, status=201)

    async def _handle_get_target(self, request: web.Request) -> web.Response:
        target = await self._require_target(self._target_id(request))
        return web.json_response({"target": target.to_dict()})

    async def _handle_update_target(self, request: web.Request) -> web.Response:
        target_id = self._target_id(request)
        body = await self._read_json(request)

        updates = {
            field: body[key]
            for key, field in _UPDATE_KEYS.items()
            if key in body
        }

        if not await self.repository.update_target(target_id, **updates):
            raise TargetNotFoundError(target_id)

        target = await self._require_target(target_id)
        return web.json_response({"target": target.to_dict()})

    async def _handle_delete_target(self, request: web.Request) -> web.Response:
        target_id = self._target_id(request)
        if not await self.repository.delete_target(target_id):
            raise TargetNotFoundError(target_id)
        return web.json_response({"message": "Target deleted successfully"})

    async def _handle_list_checks(self, request: web.Request) -> web.Response:
        target_id = self._target_id(request)
        await self._require_target(target_id)

        limit = self._int_query(request, "limit", self.monitoring.history_limit, 1, Limits.MAX_HISTORY_LIMIT)
        records = await self.repository.get_check_records(target_id, limit)
        return web.json_response({"checks": [record.to_dict() for record in records]})

    async def _handle_monitor_status(self, request: web.Request) -> web.Response:
        status = self.scheduler.get_status()
        summary = await self.repository.get_summary()
        return web.json_response({"status": status.to_dict(), "summary": summary})

    async def _handle_recent_down(self, request: web.Request) -> web.Response:
        hours = self._int_query(request, "hours", Defaults.RECENT_DOWN_HOURS, 1, 24 * 30)
        targets = await self.repository.get_recent_down_targets(hours)
        return web.json_response({
            "hours": hours,
            "targets": [target.to_dict() for target in targets],
        })

    async def _handle_manual_check(self, request: web.Request) -> web.Response:
        body = await self._read_json(request, required=False)
        target_id = body.get("targetId", body.get("target_id"))

        task = await self.scheduler.run_manual_check(target_id)

        if target_id is not None:
            message = "Manual check initiated for specific target"
        elif task is None:
            message = "A full check is already in progress"
        else:
            message = "Manual check initiated for all targets"
        return web.json_response({"message": message})

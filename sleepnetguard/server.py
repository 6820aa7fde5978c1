"""HTTP control API for the sleepnetguard daemon.

Sleep hooks (e.g. sleepwatcher) deliver events here through the CLI.
"""

import asyncio
import json
import logging
from pathlib import Path

from aiohttp import web

from sleepnetguard.config import PREFERENCES_FILE, load_preferences, update_preferences
from sleepnetguard.coordinator import SleepEvent, SleepWakeCoordinator
from sleepnetguard.diagnostics import run_diagnostic

log = logging.getLogger(__name__)

_coordinator_key = web.AppKey("coordinator", SleepWakeCoordinator)
_preferences_path_key = web.AppKey("preferences_path", Path)
_stop_event_key = web.AppKey("stop_event", asyncio.Event)


def create_app(
    coordinator: SleepWakeCoordinator,
    stop_event: asyncio.Event | None = None,
    preferences_path: Path = PREFERENCES_FILE,
) -> web.Application:
    app = web.Application()
    app[_coordinator_key] = coordinator
    app[_preferences_path_key] = preferences_path

    if stop_event is not None:
        app[_stop_event_key] = stop_event

    app.router.add_get("/api/status", handle_status)
    app.router.add_get("/api/preferences", handle_get_preferences)
    app.router.add_put("/api/preferences", handle_put_preferences)
    app.router.add_post("/api/events/sleep", handle_sleep)
    app.router.add_post("/api/events/wake", handle_wake)
    app.router.add_post("/api/diagnose", handle_diagnose)
    app.router.add_post("/api/shutdown", handle_shutdown)

    return app


async def handle_status(request: web.Request) -> web.Response:
    coordinator = request.app[_coordinator_key]
    status = await asyncio.to_thread(coordinator.status)
    status["preferences"] = load_preferences(request.app[_preferences_path_key]).to_dict()
    return web.json_response(status)


async def handle_get_preferences(request: web.Request) -> web.Response:
    prefs = load_preferences(request.app[_preferences_path_key])
    return web.json_response(prefs.to_dict())


async def handle_put_preferences(request: web.Request) -> web.Response:
    try:
        data = await request.json()
    except json.JSONDecodeError:
        return web.json_response({"error": "Invalid JSON"}, status=400)
    if not isinstance(data, dict):
        return web.json_response({"error": "Expected a JSON object"}, status=400)

    try:
        prefs = update_preferences(request.app[_preferences_path_key], **data)
    except (ValueError, TypeError) as e:
        return web.json_response({"error": str(e)}, status=400)
    return web.json_response({"ok": True, "preferences": prefs.to_dict()})


async def _simulated_flag(request: web.Request) -> bool:
    if not request.can_read_body:
        return False
    try:
        data = await request.json()
    except json.JSONDecodeError:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Invalid JSON"}), content_type="application/json"
        )
    simulated = data.get("simulated", False) if isinstance(data, dict) else False
    if not isinstance(simulated, bool):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "simulated must be true or false"}),
            content_type="application/json",
        )
    return simulated


async def _handle_event(request: web.Request, event: SleepEvent) -> web.Response:
    coordinator = request.app[_coordinator_key]
    simulated = await _simulated_flag(request)
    try:
        result = await coordinator.submit(event, simulated=simulated)
    except ConnectionError as e:
        return web.json_response({"error": str(e)}, status=503)
    return web.json_response({"ok": True, "result": result.to_dict()})


async def handle_sleep(request: web.Request) -> web.Response:
    return await _handle_event(request, SleepEvent.WILL_SLEEP)


async def handle_wake(request: web.Request) -> web.Response:
    return await _handle_event(request, SleepEvent.DID_WAKE)


async def handle_diagnose(request: web.Request) -> web.Response:
    coordinator = request.app[_coordinator_key]
    try:
        report = await coordinator.run_exclusive(lambda: run_diagnostic(coordinator.radios))
    except ConnectionError as e:
        return web.json_response({"error": str(e)}, status=503)
    return web.json_response({"ok": True, **report.to_dict()})


async def handle_shutdown(request: web.Request) -> web.Response:
    stop_event = request.app.get(_stop_event_key)
    resp = web.json_response({"ok": True})
    await resp.prepare(request)
    await resp.write_eof()
    log.info("Shutdown requested via API")
    if stop_event is not None:
        stop_event.set()
    return resp

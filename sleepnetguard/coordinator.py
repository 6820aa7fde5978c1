"""Sleep/wake coordinator: turns radios off before sleep and restores them after wake."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from sleepnetguard.config import PREFERENCES_FILE, Preferences, load_preferences
from sleepnetguard.power import PowerSourceMonitor
from sleepnetguard.radio import RadioController, RadioKind

log = logging.getLogger(__name__)


class SleepEvent(Enum):
    WILL_SLEEP = "will_sleep"
    DID_WAKE = "did_wake"


@dataclass(frozen=True, slots=True)
class RadioAction:
    kind: RadioKind
    desired: bool
    ok: bool
    previous: bool | None = None

    def to_dict(self) -> dict:
        return {
            "radio": self.kind.value,
            "desired": self.desired,
            "previous": self.previous,
            "ok": self.ok,
        }


@dataclass
class TransitionResult:
    event: SleepEvent
    simulated: bool = False
    skipped: str | None = None
    actions: list[RadioAction] = field(default_factory=list)
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "event": self.event.value,
            "simulated": self.simulated,
            "skipped": self.skipped,
            "actions": [a.to_dict() for a in self.actions],
            "message": self.message,
        }


def _disable_flag(prefs: Preferences, kind: RadioKind) -> bool:
    if kind is RadioKind.WIFI:
        return prefs.disable_wifi_on_sleep
    return prefs.disable_bluetooth_on_sleep


def _on_off(on: bool) -> str:
    return "on" if on else "off"


class SleepWakeCoordinator:
    """Owns the pre-sleep radio snapshot.

    All transitions go through a single consumer task (see ``start``), which is
    the only writer of the snapshot. ``will_sleep`` and ``did_wake`` are the
    blocking transition bodies and can be called directly when no event loop is
    involved.
    """

    def __init__(
        self,
        radios: RadioController,
        power: PowerSourceMonitor,
        preferences: Callable[[], Preferences] | None = None,
        preferences_path: Path = PREFERENCES_FILE,
    ):
        self._radios = radios
        self._power = power
        self._load_preferences = preferences or (lambda: load_preferences(preferences_path))
        self._snapshot: dict[RadioKind, bool] = {}
        self._last: TransitionResult | None = None
        self._queue: asyncio.Queue | None = None
        self._consumer: asyncio.Task | None = None

    @property
    def snapshot(self) -> dict[RadioKind, bool]:
        return dict(self._snapshot)

    @property
    def last_transition(self) -> TransitionResult | None:
        return self._last

    @property
    def radios(self) -> RadioController:
        return self._radios

    # --- Transitions ---

    def will_sleep(self, simulated: bool = False) -> TransitionResult:
        prefs = self._load_preferences()
        on_mains = self._power.is_on_mains()
        log.info("will-sleep: disable_wifi=%s disable_bluetooth=%s on_mains=%s",
                 prefs.disable_wifi_on_sleep, prefs.disable_bluetooth_on_sleep, on_mains)
        result = TransitionResult(SleepEvent.WILL_SLEEP, simulated=simulated)

        if on_mains:
            log.info("On mains power, leaving radios untouched")
            result.skipped = "on mains power"
            return self._finish(result, "skipped: on mains power")

        for kind in RadioKind:
            if not _disable_flag(prefs, kind):
                continue
            previous = self._radios.get_power(kind)
            self._snapshot[kind] = previous
            ok = self._radios.set_power(kind, False)
            log.info("will-sleep %s off (was %s) -> %s", kind.label, _on_off(previous), ok)
            result.actions.append(RadioAction(kind, desired=False, ok=ok, previous=previous))

        return self._finish(result, "will-sleep actions performed")

    def did_wake(self, simulated: bool = False) -> TransitionResult:
        prefs = self._load_preferences()
        result = TransitionResult(SleepEvent.DID_WAKE, simulated=simulated)

        if not prefs.restore_on_wake:
            if self._snapshot:
                log.info("restore_on_wake disabled, discarding snapshot %s", self._describe_snapshot())
            self._snapshot.clear()
            result.skipped = "restore on wake disabled"
            return self._finish(result, "skipped: restore on wake disabled")

        for kind in RadioKind:
            if kind not in self._snapshot:
                continue
            was_on = self._snapshot.pop(kind)
            ok = self._radios.set_power(kind, was_on)
            log.info("did-wake restore %s %s -> %s", kind.label, _on_off(was_on), ok)
            result.actions.append(RadioAction(kind, desired=was_on, ok=ok))

        return self._finish(result, "did-wake restore performed")

    def handle(self, event: SleepEvent, simulated: bool = False) -> TransitionResult:
        if event is SleepEvent.WILL_SLEEP:
            return self.will_sleep(simulated)
        return self.did_wake(simulated)

    def _finish(self, result: TransitionResult, summary: str) -> TransitionResult:
        if result.simulated:
            result.message = f"[simulated] {summary}"
            log.info(result.message)
        self._last = result
        return result

    def _describe_snapshot(self) -> str:
        return ", ".join(f"{k.label}={_on_off(v)}" for k, v in self._snapshot.items()) or "empty"

    # --- Sequencing ---

    def start(self):
        if self._consumer is None:
            self._queue = asyncio.Queue()
            self._consumer = asyncio.create_task(self._consume())
            log.info("Listening for sleep/wake events")

    async def stop(self):
        if self._consumer is None:
            return
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.set_exception(ConnectionError("Coordinator stopped"))
        self._queue = None
        log.info("Stopped listening for sleep/wake events")

    async def submit(self, event: SleepEvent, simulated: bool = False) -> TransitionResult:
        return await self.run_exclusive(lambda: self.handle(event, simulated))

    async def run_exclusive(self, fn: Callable):
        """Run blocking radio work on the coordinator's sequencing context."""
        if self._queue is None:
            raise ConnectionError("Coordinator is not running")
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((fn, future))
        return await future

    async def _consume(self):
        while True:
            fn, future = await self._queue.get()
            try:
                value = await asyncio.to_thread(fn)
            except asyncio.CancelledError:
                if not future.done():
                    future.cancel()
                raise
            except Exception as e:
                log.exception("Coordinator task failed")
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(value)

    def status(self) -> dict:
        last = self._last.to_dict() if self._last else None
        return {
            "running": self._consumer is not None,
            "on_mains": self._power.on_mains,
            "power_source": self._power.current_label,
            "wifi_interface": self._radios.cached_wifi_interface,
            "bluetooth_tool": self._radios.bluetooth_tool(),
            "snapshot": {k.value: v for k, v in list(self._snapshot.items())},
            "last_transition": last,
        }

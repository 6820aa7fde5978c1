"""Power source detection: mains vs battery, via pmset (macOS) or sysfs (Linux)."""

import asyncio
import logging
import sys
from pathlib import Path

from sleepnetguard.commands import CommandRunner

log = logging.getLogger(__name__)

POWER_SUPPLY_ROOT = Path("/sys/class/power_supply")

# Common AC adapter directory names
_AC_NAMES = ("AC", "AC0", "ADP0", "ADP1", "ACAD", "ac")

MAINS_LABEL = "Mains"
BATTERY_LABEL = "Battery"


def _find_ac_adapter(root: Path) -> Path | None:
    for name in _AC_NAMES:
        path = root / name
        if path.is_dir():
            return path

    if not root.is_dir():
        return None
    for entry in sorted(root.iterdir()):
        type_file = entry / "type"
        if type_file.is_file() and type_file.read_text().strip() == "Mains":
            log.debug("Found AC adapter at %s (via type scan)", entry)
            return entry
    return None


def parse_pmset_source(output: str) -> bool:
    """True if `pmset -g ps` reports the machine is drawing from AC power."""
    for line in output.splitlines():
        if "drawing from" in line:
            return "'AC Power'" in line
    return False


class PowerSourceMonitor:
    def __init__(
        self,
        runner: CommandRunner,
        backend: str = "auto",
        pmset: str = "/usr/bin/pmset",
        sysfs_root: Path = POWER_SUPPLY_ROOT,
        poll_interval: float = 2.0,
    ):
        if backend == "auto":
            backend = "pmset" if sys.platform == "darwin" else "sysfs"
        self._runner = runner
        self._backend = backend
        self._pmset = pmset
        self._sysfs_root = sysfs_root
        self._poll_interval = poll_interval
        self._poll_task: asyncio.Task | None = None
        self._on_mains = False
        self._label = BATTERY_LABEL

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def on_mains(self) -> bool:
        """Value from the last poll; use is_on_mains() for a fresh answer."""
        return self._on_mains

    @property
    def current_label(self) -> str:
        return self._label

    def is_on_mains(self) -> bool:
        try:
            if self._backend == "pmset":
                return self._query_pmset()
            return self._query_sysfs()
        except OSError as e:
            log.warning("Power source query failed, assuming battery: %s", e)
            return False

    def label(self) -> str:
        return MAINS_LABEL if self.is_on_mains() else BATTERY_LABEL

    def _query_pmset(self) -> bool:
        result = self._runner.run(self._pmset, ["-g", "ps"])
        if not result.ok:
            return False
        return parse_pmset_source(result.stdout)

    def _query_sysfs(self) -> bool:
        ac_path = _find_ac_adapter(self._sysfs_root)
        if ac_path is None:
            log.debug("No AC adapter found under %s", self._sysfs_root)
            return False
        online_file = ac_path / "online"
        if not online_file.is_file():
            return False
        return online_file.read_text().strip() == "1"

    # --- Polling ---

    def refresh(self):
        on_mains = self.is_on_mains()
        if on_mains != self._on_mains:
            log.info("Power source: %s -> %s",
                     MAINS_LABEL if self._on_mains else BATTERY_LABEL,
                     MAINS_LABEL if on_mains else BATTERY_LABEL)
        self._on_mains = on_mains
        self._label = MAINS_LABEL if on_mains else BATTERY_LABEL

    def start(self):
        if self._poll_task is None:
            self.refresh()
            self._poll_task = asyncio.create_task(self._poll_loop())

    def stop(self):
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_loop(self):
        log.info("Power source polling started (every %.1fs, backend %s)",
                 self._poll_interval, self._backend)
        try:
            while True:
                await asyncio.sleep(self._poll_interval)
                await asyncio.to_thread(self.refresh)
        except asyncio.CancelledError:
            log.info("Power source polling stopped")

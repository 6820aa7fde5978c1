"""Locate the Wi-Fi interface and the Bluetooth power tool."""

import logging
import os

from sleepnetguard.commands import CommandRunner

log = logging.getLogger(__name__)

BLUETOOTH_TOOL = "blueutil"

_WIFI_PORT_LABELS = ("Hardware Port: Wi-Fi", "Hardware Port: AirPort")
_DEVICE_PREFIX = "Device:"
# A port block lists its device within a few lines of the port label
_DEVICE_LOOKAHEAD = 4

DEFAULT_BLUETOOTH_CANDIDATES = (
    "/opt/homebrew/bin/blueutil",
    "/usr/local/bin/blueutil",
    "/usr/bin/blueutil",
)


def parse_hardware_ports(text: str) -> str | None:
    """Find the Wi-Fi device in `networksetup -listallhardwareports` output.

    Example block::

        Hardware Port: Wi-Fi
        Device: en0
        Ethernet Address: a4:83:e7:00:00:00
    """
    lines = text.splitlines()
    for i, line in enumerate(lines):
        if not any(label in line for label in _WIFI_PORT_LABELS):
            continue
        for following in lines[i + 1:i + 1 + _DEVICE_LOOKAHEAD]:
            if following.startswith(_DEVICE_PREFIX):
                device = following.removeprefix(_DEVICE_PREFIX).strip()
                return device or None
    return None


def _is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


class NetworkDeviceResolver:
    def __init__(
        self,
        runner: CommandRunner,
        networksetup: str = "/usr/sbin/networksetup",
        which: str = "/usr/bin/which",
        bluetooth_candidates: list[str] | tuple[str, ...] = DEFAULT_BLUETOOTH_CANDIDATES,
    ):
        self._runner = runner
        self._networksetup = networksetup
        self._which = which
        self._bluetooth_candidates = tuple(bluetooth_candidates)

    @property
    def networksetup(self) -> str:
        return self._networksetup

    def resolve_wifi_interface(self) -> str | None:
        result = self._runner.run(self._networksetup, ["-listallhardwareports"])
        if not result.ok:
            return None
        device = parse_hardware_ports(result.stdout)
        if device is None:
            log.debug("No Wi-Fi hardware port in networksetup listing")
        return device

    def resolve_bluetooth_tool(self) -> str | None:
        result = self._runner.run(self._which, [BLUETOOTH_TOOL])
        if result.ok:
            path = result.output
            if path and _is_executable(path):
                return path

        for candidate in self._bluetooth_candidates:
            if _is_executable(candidate):
                log.debug("Found %s at fallback path %s", BLUETOOTH_TOOL, candidate)
                return candidate
        return None

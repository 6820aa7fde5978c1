"""Wi-Fi and Bluetooth power control through networksetup and blueutil."""

import logging
from enum import Enum, auto

from sleepnetguard.commands import CommandResult, CommandRunner
from sleepnetguard.devices import NetworkDeviceResolver

log = logging.getLogger(__name__)

# networksetup exit status when the BSD device name is not in the service order
STATUS_DEVICE_REJECTED = 9


class RadioKind(Enum):
    WIFI = "wifi"
    BLUETOOTH = "bluetooth"

    @property
    def label(self) -> str:
        return "Wi-Fi" if self is RadioKind.WIFI else "Bluetooth"


class Outcome(Enum):
    SUCCESS = auto()
    REJECTED_NAME = auto()
    FAILED = auto()


def classify(result: CommandResult) -> Outcome:
    if result.status == 0:
        return Outcome.SUCCESS
    if result.status == STATUS_DEVICE_REJECTED:
        return Outcome.REJECTED_NAME
    return Outcome.FAILED


def parse_airport_power(output: str) -> bool:
    """Parse `Wi-Fi Power (en0): On` style output."""
    _, sep, value = output.strip().rpartition(":")
    if not sep:
        return False
    return value.strip().lower() == "on"


class RadioController:
    def __init__(
        self,
        runner: CommandRunner,
        resolver: NetworkDeviceResolver,
        default_wifi_device: str = "en0",
        fallback_wifi_name: str = "Wi-Fi",
    ):
        self._runner = runner
        self._resolver = resolver
        self._default_wifi_device = default_wifi_device
        self._fallback_wifi_name = fallback_wifi_name
        self._wifi_interface: str | None = None
        self._last_wifi_target: str | None = None

    @property
    def cached_wifi_interface(self) -> str | None:
        return self._wifi_interface

    @property
    def last_wifi_target(self) -> str | None:
        """Name passed to networksetup by the most recent Wi-Fi command."""
        return self._last_wifi_target

    def wifi_interface(self) -> str:
        if self._wifi_interface is None:
            resolved = self._resolver.resolve_wifi_interface()
            if resolved is not None:
                log.info("Detected Wi-Fi device: %s", resolved)
                self._wifi_interface = resolved
            else:
                log.warning("Could not detect Wi-Fi device, using %s", self._default_wifi_device)
                return self._default_wifi_device
        return self._wifi_interface

    def bluetooth_tool(self) -> str | None:
        return self._resolver.resolve_bluetooth_tool()

    # --- Raw commands ---

    def _airport(self, flag: str, *extra: str) -> CommandResult:
        device = self.wifi_interface()
        self._last_wifi_target = device
        result = self._runner.run(self._resolver.networksetup, [flag, device, *extra])
        if classify(result) is Outcome.REJECTED_NAME:
            log.info("networksetup rejected device %s, retrying as %r",
                     device, self._fallback_wifi_name)
            self._last_wifi_target = self._fallback_wifi_name
            result = self._runner.run(
                self._resolver.networksetup, [flag, self._fallback_wifi_name, *extra]
            )
        return result

    def query_wifi(self) -> CommandResult:
        return self._airport("-getairportpower")

    def switch_wifi(self, on: bool) -> CommandResult:
        return self._airport("-setairportpower", "on" if on else "off")

    def query_bluetooth(self, tool: str | None = None) -> CommandResult | None:
        tool = tool or self.bluetooth_tool()
        if tool is None:
            return None
        return self._runner.run(tool, ["--power"])

    def switch_bluetooth(self, on: bool, tool: str | None = None) -> CommandResult | None:
        tool = tool or self.bluetooth_tool()
        if tool is None:
            return None
        return self._runner.run(tool, ["--power", "1" if on else "0"])

    # --- Power state ---

    def get_power(self, kind: RadioKind) -> bool:
        if kind is RadioKind.WIFI:
            result = self.query_wifi()
            if not result.ok:
                log.warning("getairportpower failed: %s", result.stderr.strip())
            return parse_airport_power(result.stdout)

        result = self.query_bluetooth()
        if result is None:
            log.debug("blueutil not found, assuming Bluetooth is on")
            return True
        return result.output == "1"

    def set_power(self, kind: RadioKind, on: bool) -> bool:
        if kind is RadioKind.WIFI:
            result = self.switch_wifi(on)
        else:
            result = self.switch_bluetooth(on)
            if result is None:
                log.warning("blueutil not found, cannot switch Bluetooth %s", "on" if on else "off")
                return False

        if not result.ok:
            log.warning("%s power %s failed (status %d): %s",
                        kind.label, "on" if on else "off", result.status, result.stderr.strip())
            return False
        return True

import logging
from unittest.mock import MagicMock

import pytest

from sleepnetguard.commands import CommandResult
from sleepnetguard.radio import (
    Outcome,
    RadioController,
    RadioKind,
    classify,
    parse_airport_power,
)

log = logging.getLogger(__name__)

NETWORKSETUP = "/usr/sbin/networksetup"
BLUEUTIL = "/opt/homebrew/bin/blueutil"


def _ok(stdout=""):
    return CommandResult(0, stdout, "")


def _responder(responses):
    """Map (path, *args) tuples to results; unknown commands fail."""
    def run(path, args=()):
        return responses.get((path, *args), CommandResult(1, "", "unexpected command"))
    return run


@pytest.fixture
def runner():
    m = MagicMock()
    m.run = MagicMock(side_effect=_responder({
        (NETWORKSETUP, "-getairportpower", "en0"): _ok("Wi-Fi Power (en0): On\n"),
        (NETWORKSETUP, "-setairportpower", "en0", "off"): _ok(),
        (NETWORKSETUP, "-setairportpower", "en0", "on"): _ok(),
        (BLUEUTIL, "--power"): _ok("1\n"),
        (BLUEUTIL, "--power", "0"): _ok(),
        (BLUEUTIL, "--power", "1"): _ok(),
    }))
    return m


@pytest.fixture
def resolver():
    m = MagicMock()
    m.networksetup = NETWORKSETUP
    m.resolve_wifi_interface = MagicMock(return_value="en0")
    m.resolve_bluetooth_tool = MagicMock(return_value=BLUEUTIL)
    return m


@pytest.fixture
def radios(runner, resolver):
    return RadioController(runner, resolver)


def test_classify():
    assert classify(CommandResult(0, "", "")) is Outcome.SUCCESS
    assert classify(CommandResult(9, "", "")) is Outcome.REJECTED_NAME
    assert classify(CommandResult(1, "", "")) is Outcome.FAILED
    assert classify(CommandResult(-1, "", "")) is Outcome.FAILED


@pytest.mark.parametrize("output, expected", [
    ("Wi-Fi Power (en0): On", True),
    ("Wi-Fi Power (en0): Off", False),
    ("AirPort Power (en1): ON\n", True),
    ("wi-fi power (en0): on", True),
    ("", False),
    ("en0 is not a Wi-Fi interface.", False),
])
def test_parse_airport_power(output, expected):
    assert parse_airport_power(output) is expected


# --- Wi-Fi ---


def test_get_wifi_power(radios, runner):
    assert radios.get_power(RadioKind.WIFI) is True
    runner.run.assert_called_once_with(NETWORKSETUP, ["-getairportpower", "en0"])


def test_set_wifi_power(radios, runner):
    assert radios.set_power(RadioKind.WIFI, False) is True
    runner.run.assert_called_once_with(NETWORKSETUP, ["-setairportpower", "en0", "off"])


def test_wifi_interface_cached_after_resolution(radios, resolver):
    radios.get_power(RadioKind.WIFI)
    radios.set_power(RadioKind.WIFI, True)

    resolver.resolve_wifi_interface.assert_called_once()
    assert radios.cached_wifi_interface == "en0"


def test_wifi_interface_defaults_to_en0_when_unresolved(radios, resolver, runner):
    resolver.resolve_wifi_interface.return_value = None

    assert radios.wifi_interface() == "en0"
    assert radios.cached_wifi_interface is None

    resolver.resolve_wifi_interface.return_value = "en2"
    assert radios.wifi_interface() == "en2"
    assert radios.cached_wifi_interface == "en2"


def test_wifi_get_retries_once_with_literal_name(radios, runner):
    runner.run.side_effect = [
        CommandResult(9, "", "en0 is not a recognized network service."),
        _ok("Wi-Fi Power (Wi-Fi): Off"),
    ]

    assert radios.get_power(RadioKind.WIFI) is False
    assert runner.run.call_count == 2
    runner.run.assert_called_with(NETWORKSETUP, ["-getairportpower", "Wi-Fi"])


def test_last_wifi_target_tracks_fallback(radios, runner):
    runner.run.side_effect = [_ok("Wi-Fi Power (en0): On"), CommandResult(9, "", ""), _ok()]

    assert radios.last_wifi_target is None
    radios.get_power(RadioKind.WIFI)
    assert radios.last_wifi_target == "en0"
    radios.set_power(RadioKind.WIFI, False)
    assert radios.last_wifi_target == "Wi-Fi"


def test_wifi_set_retries_once_with_literal_name(radios, runner):
    runner.run.side_effect = [CommandResult(9, "", ""), _ok()]

    assert radios.set_power(RadioKind.WIFI, True) is True
    runner.run.assert_called_with(NETWORKSETUP, ["-setairportpower", "Wi-Fi", "on"])


def test_wifi_retry_happens_only_once(radios, runner):
    runner.run.side_effect = [CommandResult(9, "", ""), CommandResult(9, "", "")]

    assert radios.set_power(RadioKind.WIFI, False) is False
    assert runner.run.call_count == 2


def test_wifi_no_retry_on_other_failure(radios, runner):
    runner.run.side_effect = [CommandResult(1, "", "permission denied")]

    assert radios.set_power(RadioKind.WIFI, False) is False
    assert runner.run.call_count == 1


def test_wifi_set_failure_logged(radios, runner, caplog):
    runner.run.side_effect = [CommandResult(4, "", "some error")]

    with caplog.at_level(logging.WARNING):
        assert radios.set_power(RadioKind.WIFI, False) is False

    assert "some error" in caplog.text


def test_custom_fallback_name(runner, resolver):
    radios = RadioController(runner, resolver, fallback_wifi_name="AirPort")
    runner.run.side_effect = [CommandResult(9, "", ""), _ok("AirPort Power (en0): On")]

    assert radios.get_power(RadioKind.WIFI) is True
    runner.run.assert_called_with(NETWORKSETUP, ["-getairportpower", "AirPort"])


# --- Bluetooth ---


def test_get_bluetooth_power_on(radios):
    assert radios.get_power(RadioKind.BLUETOOTH) is True


def test_get_bluetooth_power_off(radios, runner):
    runner.run.side_effect = [_ok("0\n")]
    assert radios.get_power(RadioKind.BLUETOOTH) is False


def test_set_bluetooth_power(radios, runner):
    assert radios.set_power(RadioKind.BLUETOOTH, False) is True
    runner.run.assert_called_once_with(BLUEUTIL, ["--power", "0"])


def test_set_bluetooth_power_failure(radios, runner):
    runner.run.side_effect = [CommandResult(1, "", "Failed to switch")]
    assert radios.set_power(RadioKind.BLUETOOTH, True) is False


def test_bluetooth_tool_missing_reads_as_on(radios, resolver, runner):
    resolver.resolve_bluetooth_tool.return_value = None

    assert radios.get_power(RadioKind.BLUETOOTH) is True
    runner.run.assert_not_called()


def test_bluetooth_tool_missing_cannot_set(radios, resolver, runner):
    resolver.resolve_bluetooth_tool.return_value = None

    assert radios.set_power(RadioKind.BLUETOOTH, False) is False
    assert radios.set_power(RadioKind.BLUETOOTH, True) is False
    runner.run.assert_not_called()


def test_bluetooth_tool_resolved_every_call(radios, resolver):
    radios.get_power(RadioKind.BLUETOOTH)
    radios.set_power(RadioKind.BLUETOOTH, True)

    assert resolver.resolve_bluetooth_tool.call_count == 2

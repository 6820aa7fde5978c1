import logging

import pytest

from sleepnetguard.commands import CommandRunner
from sleepnetguard.devices import NetworkDeviceResolver
from sleepnetguard.power import PowerSourceMonitor
from sleepnetguard.radio import RadioController, RadioKind

log = logging.getLogger(__name__)

pytestmark = pytest.mark.hardware


@pytest.fixture
def runner():
    return CommandRunner()


@pytest.fixture
def radios(runner):
    return RadioController(runner, NetworkDeviceResolver(runner))


def test_detects_wifi_interface(runner):
    device = NetworkDeviceResolver(runner).resolve_wifi_interface()
    log.info("Wi-Fi interface: %s", device)
    assert device


def test_power_source_label(runner):
    monitor = PowerSourceMonitor(runner, backend="pmset")
    label = monitor.label()
    log.info("Power source: %s", label)
    assert label in ("Mains", "Battery")


def test_read_radio_state(radios):
    wifi = radios.get_power(RadioKind.WIFI)
    bluetooth = radios.get_power(RadioKind.BLUETOOTH)
    log.info("Wi-Fi on: %s, Bluetooth on: %s, blueutil: %s",
             wifi, bluetooth, radios.bluetooth_tool())
    assert isinstance(wifi, bool)
    assert isinstance(bluetooth, bool)


def test_wifi_toggle_round_trip(radios):
    before = radios.get_power(RadioKind.WIFI)
    try:
        assert radios.set_power(RadioKind.WIFI, not before)
        assert radios.get_power(RadioKind.WIFI) is (not before)
    finally:
        radios.set_power(RadioKind.WIFI, before)
    assert radios.get_power(RadioKind.WIFI) is before

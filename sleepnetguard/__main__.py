"""sleepnetguard entry point: python -m sleepnetguard"""

import asyncio
import logging
import signal
from pathlib import Path

from aiohttp import web

from sleepnetguard.commands import CommandRunner
from sleepnetguard.config import PREFERENCES_FILE, PREFERENCE_KEYS, Config, load_config
from sleepnetguard.coordinator import SleepWakeCoordinator
from sleepnetguard.devices import NetworkDeviceResolver
from sleepnetguard.power import PowerSourceMonitor
from sleepnetguard.radio import RadioController
from sleepnetguard.server import create_app

log = logging.getLogger("sleepnetguard")

_DEFAULT_URL = "http://127.0.0.1:7381"

_CLIENT_COMMANDS = {
    "status": "Show daemon status",
    "sleep": "Deliver a will-sleep event (sleep hook)",
    "wake": "Deliver a did-wake event (wake hook)",
    "simulate-sleep": "Run the will-sleep actions now and report them",
    "simulate-wake": "Run the did-wake restore now and report it",
    "diagnose": "Switch Wi-Fi/Bluetooth off and on and print a report (disruptive)",
    "prefs": "Show preferences",
    "stop": "Stop the daemon",
}


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Turn Wi-Fi and Bluetooth off while asleep")
    parser.set_defaults(config=None, port=None, log_level=None, preferences=None)
    sub = parser.add_subparsers(dest="command")

    # daemon subcommand (also the default when no subcommand given)
    daemon_parser = sub.add_parser("daemon", help="Run the daemon (default)")
    daemon_parser.add_argument("-c", "--config", type=Path, help="Path to config.json")
    daemon_parser.add_argument("-p", "--port", type=int, help="Override HTTP port")
    daemon_parser.add_argument("--preferences", type=Path, help="Path to preferences.json")
    daemon_parser.add_argument("--log-level", default=None, help="Log level")

    # CLI subcommands
    for name, help_text in _CLIENT_COMMANDS.items():
        cmd_parser = sub.add_parser(name, help=help_text)
        cmd_parser.add_argument("--url", default=_DEFAULT_URL, help="Daemon URL")

    set_parser = sub.add_parser("set", help="Change a preference")
    set_parser.add_argument(
        "key", choices=["wifi", "bluetooth", "restore", *PREFERENCE_KEYS], help="Preference"
    )
    set_parser.add_argument("value", choices=["on", "off"])
    set_parser.add_argument("--url", default=_DEFAULT_URL, help="Daemon URL")

    args = parser.parse_args()

    if args.command is None or args.command == "daemon":
        _run_daemon(args)
    else:
        from sleepnetguard.cli import run_command
        run_command(args)


def _run_daemon(args):
    config = load_config(args.config)

    if args.port:
        config.daemon.port = args.port
    if args.log_level:
        config.daemon.log_level = args.log_level

    level = getattr(logging, config.daemon.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)-25s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    log.info("sleepnetguard v0.1.0 starting")

    preferences_path = args.preferences or PREFERENCES_FILE
    coordinator, power = build(config, preferences_path)
    asyncio.run(_run(coordinator, power, config.daemon.port, preferences_path))


def build(config: Config, preferences_path: Path = PREFERENCES_FILE):
    runner = CommandRunner()
    tools = config.tools
    resolver = NetworkDeviceResolver(
        runner,
        networksetup=tools.networksetup,
        which=tools.which,
        bluetooth_candidates=tools.blueutil_candidates,
    )
    radios = RadioController(
        runner,
        resolver,
        default_wifi_device=tools.default_wifi_device,
        fallback_wifi_name=tools.fallback_wifi_name,
    )
    power = PowerSourceMonitor(
        runner,
        backend=config.power.backend,
        pmset=tools.pmset,
        poll_interval=config.power.poll_interval,
    )
    coordinator = SleepWakeCoordinator(radios, power, preferences_path=preferences_path)
    return coordinator, power


async def _run(coordinator: SleepWakeCoordinator, power: PowerSourceMonitor, port: int,
               preferences_path: Path):
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    log.info("Wi-Fi device: %s", await asyncio.to_thread(coordinator.radios.wifi_interface))
    power.start()
    coordinator.start()

    app = create_app(coordinator, stop_event=stop_event, preferences_path=preferences_path)

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: _request_stop(stop_event, s))

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    log.info("HTTP server listening on http://127.0.0.1:%d", port)

    try:
        await stop_event.wait()
    finally:
        power.stop()
        await coordinator.stop()
        await runner.cleanup()


def _request_stop(stop_event: asyncio.Event, sig: signal.Signals):
    log.info("Received %s, shutting down...", sig.name)
    stop_event.set()


if __name__ == "__main__":
    main()

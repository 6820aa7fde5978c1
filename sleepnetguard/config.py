"""Configuration loading from JSON files, with persistent user preferences."""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)
_USER_CONFIG = Path.home() / ".config" / "sleepnetguard" / "config.json"
_SYSTEM_CONFIG = Path("/etc/sleepnetguard/config.json")
PREFERENCES_FILE = Path.home() / ".config" / "sleepnetguard" / "preferences.json"

_BACKENDS = ("auto", "pmset", "sysfs")


@dataclass
class DaemonConfig:
    port: int = 7381
    log_level: str = "info"

    def __post_init__(self):
        if not 1 <= self.port <= 65535:
            raise ValueError(f"daemon.port must be 1-65535, got {self.port}")


@dataclass
class PowerConfig:
    poll_interval: float = 2.0
    backend: str = "auto"

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError(f"power.poll_interval must be positive, got {self.poll_interval}")
        if self.backend not in _BACKENDS:
            raise ValueError(f"power.backend must be one of {', '.join(_BACKENDS)}, got {self.backend!r}")


@dataclass
class ToolsConfig:
    networksetup: str = "/usr/sbin/networksetup"
    which: str = "/usr/bin/which"
    pmset: str = "/usr/bin/pmset"
    blueutil_candidates: list[str] = field(default_factory=lambda: [
        "/opt/homebrew/bin/blueutil",
        "/usr/local/bin/blueutil",
        "/usr/bin/blueutil",
    ])
    default_wifi_device: str = "en0"
    fallback_wifi_name: str = "Wi-Fi"


@dataclass
class Config:
    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    power: PowerConfig = field(default_factory=PowerConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)


def load_config(path: Path | None = None) -> Config:
    if path is not None:
        candidates = [path]
    else:
        candidates = [_USER_CONFIG, _SYSTEM_CONFIG]

    for candidate in candidates:
        if candidate.is_file():
            log.info("Loading config from %s", candidate)
            data = json.loads(candidate.read_text())
            return _parse(data)

    log.info("No config file found, using defaults")
    return Config()


def _parse(data: dict) -> Config:
    return Config(
        daemon=DaemonConfig(**data.get("daemon", {})),
        power=PowerConfig(**data.get("power", {})),
        tools=ToolsConfig(**data.get("tools", {})),
    )


# --- User preferences ---


@dataclass(frozen=True)
class Preferences:
    disable_wifi_on_sleep: bool = True
    disable_bluetooth_on_sleep: bool = True
    restore_on_wake: bool = True

    def __post_init__(self):
        for name, value in asdict(self).items():
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be true or false, got {value!r}")

    def to_dict(self) -> dict:
        return asdict(self)


PREFERENCE_KEYS = tuple(Preferences.__dataclass_fields__)


def load_preferences(path: Path = PREFERENCES_FILE) -> Preferences:
    """Read preferences from disk, falling back to defaults per missing key.

    Called at every sleep/wake transition so that edits take effect on the
    next event without restarting the daemon.
    """
    if not path.is_file():
        return Preferences()

    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        log.warning("Failed to read preferences file %s: %s", path, e)
        return Preferences()

    if not isinstance(data, dict):
        log.warning("Ignoring preferences file %s: expected an object", path)
        return Preferences()

    values = {}
    for key in PREFERENCE_KEYS:
        if key not in data:
            continue
        if isinstance(data[key], bool):
            values[key] = data[key]
        else:
            log.warning("Ignoring invalid preference %s=%r in %s, using default", key, data[key], path)
    return Preferences(**values)


def save_preferences(prefs: Preferences, path: Path = PREFERENCES_FILE):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(prefs.to_dict(), indent=2) + "\n")


def update_preferences(path: Path = PREFERENCES_FILE, **changes) -> Preferences:
    unknown = set(changes) - set(PREFERENCE_KEYS)
    if unknown:
        raise ValueError(f"Unknown preference: {', '.join(sorted(unknown))}")
    current = load_preferences(path)
    merged = {**current.to_dict(), **changes}
    prefs = Preferences(**merged)
    if prefs != current:
        save_preferences(prefs, path)
        log.info("Preferences updated: %s", prefs.to_dict())
    return prefs

"""CLI client for the sleepnetguard daemon, also used as the sleep/wake hook."""

import json
import sys
import urllib.error
import urllib.request

_PREFERENCE_ALIASES = {
    "wifi": "disable_wifi_on_sleep",
    "bluetooth": "disable_bluetooth_on_sleep",
    "restore": "restore_on_wake",
}


def _request(url, method="GET", data=None):
    body = None
    headers = {}
    if data is not None:
        body = json.dumps(data).encode()
        headers["Content-Type"] = "application/json"

    req = urllib.request.Request(url, data=body, headers=headers, method=method)
    try:
        with urllib.request.urlopen(req) as resp:
            return json.loads(resp.read().decode())
    except urllib.error.HTTPError as e:
        try:
            detail = json.loads(e.read().decode()).get("error", e.reason)
        except (ValueError, AttributeError):
            detail = e.reason
        print(f"Error: {detail}", file=sys.stderr)
        sys.exit(1)
    except urllib.error.URLError as e:
        print(f"Error: cannot reach daemon at {url} ({e.reason})", file=sys.stderr)
        sys.exit(1)


def _on_off(value):
    if value is None:
        return "--"
    return "on" if value else "off"


def cmd_status(base_url):
    s = _request(f"{base_url}/api/status")

    print(f"Power:     {s.get('power_source', 'unknown')}")
    print(f"Wi-Fi:     {s.get('wifi_interface') or '(not detected)'}")
    print(f"blueutil:  {s.get('bluetooth_tool') or '(not found)'}")

    snapshot = s.get("snapshot") or {}
    if snapshot:
        saved = ", ".join(f"{radio}={_on_off(on)}" for radio, on in snapshot.items())
        print(f"Saved:     {saved}")

    prefs = s.get("preferences")
    if prefs:
        print(f"Prefs:     wifi={_on_off(prefs.get('disable_wifi_on_sleep'))} "
              f"bluetooth={_on_off(prefs.get('disable_bluetooth_on_sleep'))} "
              f"restore={_on_off(prefs.get('restore_on_wake'))}")

    last = s.get("last_transition")
    if last:
        outcome = last.get("skipped") or f"{len(last.get('actions', []))} action(s)"
        print(f"Last:      {last.get('event')} ({outcome})")


def _print_transition(resp):
    result = resp.get("result", {})
    if result.get("message"):
        print(result["message"])
    for action in result.get("actions", []):
        state = "ok" if action.get("ok") else "FAILED"
        print(f"  {action.get('radio')}: {_on_off(action.get('desired'))} ({state})")


def cmd_event(base_url, event, simulated=False):
    resp = _request(f"{base_url}/api/events/{event}", method="POST", data={"simulated": simulated})
    if simulated:
        _print_transition(resp)


def cmd_diagnose(base_url):
    resp = _request(f"{base_url}/api/diagnose", method="POST")
    print(resp.get("report", ""))


def cmd_prefs(base_url):
    prefs = _request(f"{base_url}/api/preferences")
    for key, value in prefs.items():
        print(f"{key}: {_on_off(value)}")


def cmd_set(base_url, key, value):
    key = _PREFERENCE_ALIASES.get(key, key)
    resp = _request(f"{base_url}/api/preferences", method="PUT", data={key: value == "on"})
    if resp.get("ok"):
        print(f"{key} set to {value}")
    else:
        print(f"Error: {resp.get('error', 'unknown')}", file=sys.stderr)
        sys.exit(1)


def cmd_stop(base_url):
    _request(f"{base_url}/api/shutdown", method="POST")
    print("Daemon stopped")


def run_command(args):
    dispatch = {
        "status": lambda: cmd_status(args.url),
        "sleep": lambda: cmd_event(args.url, "sleep"),
        "wake": lambda: cmd_event(args.url, "wake"),
        "simulate-sleep": lambda: cmd_event(args.url, "sleep", simulated=True),
        "simulate-wake": lambda: cmd_event(args.url, "wake", simulated=True),
        "diagnose": lambda: cmd_diagnose(args.url),
        "prefs": lambda: cmd_prefs(args.url),
        "set": lambda: cmd_set(args.url, args.key, args.value),
        "stop": lambda: cmd_stop(args.url),
    }
    dispatch[args.command]()

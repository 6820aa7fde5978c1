"""Scripted radio self-test.

The sequence switches both radios off and then on, so it leaves them on even
if they were off beforehand. It is only run on operator request.
"""

import logging
from dataclasses import dataclass, field

from sleepnetguard.commands import LAUNCH_FAILED, CommandResult
from sleepnetguard.radio import RadioController

log = logging.getLogger(__name__)

_NO_OUTPUT = "(no output)"
_NOT_AVAILABLE = "(n/a)"
_TOOL_NOT_FOUND = "(not found)"


@dataclass(frozen=True, slots=True)
class DiagnosticStep:
    label: str
    result: CommandResult | None
    show_output: bool = True

    @property
    def status(self) -> int:
        return self.result.status if self.result is not None else LAUNCH_FAILED

    @property
    def output(self) -> str:
        if self.result is None:
            return _NOT_AVAILABLE
        return self.result.output or _NO_OUTPUT

    def render(self) -> str:
        if self.show_output:
            return f"{self.label}: {self.output} [status {self.status}]"
        return f"{self.label} -> status {self.status}"

    def to_dict(self) -> dict:
        return {"step": self.label, "status": self.status, "output": self.output}


@dataclass
class DiagnosticReport:
    device: str
    bluetooth_tool: str | None
    steps: list[DiagnosticStep] = field(default_factory=list)

    def render(self) -> str:
        lines = [
            f"Device: {self.device}",
            f"blueutil: {self.bluetooth_tool or _TOOL_NOT_FOUND}",
        ]
        # Steps come in Wi-Fi/Bluetooth pairs, one blank line between phases
        for i in range(0, len(self.steps), 2):
            lines.append("")
            lines.extend(step.render() for step in self.steps[i:i + 2])
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "device": self.device,
            "bluetooth_tool": self.bluetooth_tool,
            "steps": [s.to_dict() for s in self.steps],
            "report": self.render(),
        }


def run_diagnostic(radios: RadioController) -> DiagnosticReport:
    device = radios.wifi_interface()
    tool = radios.bluetooth_tool()
    report = DiagnosticReport(device=device, bluetooth_tool=tool)

    def wifi_label(text: str) -> str:
        target = radios.last_wifi_target
        if target and target != device:
            return f"{text} (as \"{target}\")"
        return text

    def query(phase: str):
        wifi = radios.query_wifi()
        report.steps.append(DiagnosticStep(wifi_label(f"Wi-Fi {phase}"), wifi))
        bt = radios.query_bluetooth(tool) if tool else None
        report.steps.append(DiagnosticStep(f"BT {phase}", bt))

    def switch(on: bool):
        wifi = radios.switch_wifi(on)
        report.steps.append(DiagnosticStep(
            wifi_label(f"Wi-Fi set {'on' if on else 'off'}"), wifi, show_output=False))
        bt = radios.switch_bluetooth(on, tool) if tool else None
        report.steps.append(DiagnosticStep(
            f"BT set {'1' if on else '0'}", bt, show_output=False))

    query("before")
    switch(False)
    query("after off")
    switch(True)
    query("after on")

    log.info("Diagnostic report\n%s", report.render())
    return report

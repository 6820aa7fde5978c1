"""Synchronous external-process invocation."""

import logging
import subprocess
from dataclasses import dataclass

log = logging.getLogger(__name__)

LAUNCH_FAILED = -1


@dataclass(frozen=True, slots=True)
class CommandResult:
    status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.status == 0

    @property
    def output(self) -> str:
        return self.stdout.strip()


class CommandRunner:
    def run(self, path: str, args: list[str] | tuple[str, ...] = ()) -> CommandResult:
        argv = [path, *args]
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, check=False)
        except OSError as e:
            log.warning("%s could not be launched: %s", " ".join(argv), e)
            return CommandResult(LAUNCH_FAILED, "", str(e))

        result = CommandResult(proc.returncode, proc.stdout or "", proc.stderr or "")
        if result.status != 0 or result.stderr:
            log.warning("%s -> status %d, stderr: %s",
                        " ".join(argv), result.status, result.stderr.strip())
        return result

"""
External process execution.

Every tool the pipelines start (bundler helpers, java_home, chmod/find,
PlistBuddy, codesign, nested builds) goes through a ProcessRunner, so tests
can swap in a recorder and assert the exact command sequence.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import ExternalToolError


@dataclass
class ProcessResult:
    cmd: list
    returncode: int
    output: str = ""


def format_cmd(cmd) -> str:
    return " ".join(str(c) for c in cmd)


class ProcessRunner:
    """Runs commands synchronously, echoing each one before it starts."""

    def run(self, cmd, cwd: Path = None, capture=False) -> ProcessResult:
        cmd = [str(c) for c in cmd]
        print(f"  $ {format_cmd(cmd)}")
        try:
            result = subprocess.run(cmd, cwd=cwd, capture_output=capture, text=True)
        except OSError as e:
            raise ExternalToolError(f"Could not run {cmd[0]}: {e}", cmd=cmd) from e
        output = result.stdout if capture else ""
        if capture and result.returncode != 0 and result.stderr:
            output += result.stderr
        return ProcessResult(cmd, result.returncode, output or "")

    def check(self, cmd, cwd: Path = None, capture=False) -> ProcessResult:
        """Run a command and raise ExternalToolError on a non-zero exit."""
        result = self.run(cmd, cwd=cwd, capture=capture)
        if result.returncode != 0:
            raise ExternalToolError(
                f"Command failed with exit code {result.returncode}: {format_cmd(result.cmd)}",
                cmd=result.cmd, returncode=result.returncode, output=result.output)
        return result

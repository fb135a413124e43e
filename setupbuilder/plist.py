"""
Property list patching through PlistBuddy.

A patch is an ordered list of key-path operations collected in memory and
executed by a single applier, one PlistBuddy invocation per operation.
Order matters: array entries are addressed by index, so operations must run
exactly as they were added.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .process import ProcessRunner

PLIST_BUDDY = "/usr/libexec/PlistBuddy"

SET = "Set"
ADD = "Add"
DELETE = "Delete"


def quote(value: str) -> str:
    """Quote a value for a PlistBuddy command when it contains blanks or quotes."""
    if value == "" or any(c in value for c in ' \t"\''):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return value


def plist_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class PlistOperation:
    op: str
    key_path: str
    value: Optional[str] = None
    type: Optional[str] = None

    def command(self) -> str:
        if self.op == SET:
            return f"Set {self.key_path} {quote(self.value)}"
        if self.op == ADD:
            parts = ["Add", self.key_path, self.type]
            if self.value is not None:
                parts.append(quote(self.value))
            return " ".join(parts)
        return f"Delete {self.key_path}"


class PlistPatch:
    """Ordered operations against one plist file."""

    def __init__(self, plist: Path):
        self.plist = Path(plist)
        self.operations = []

    def set(self, key_path: str, value):
        self.operations.append(PlistOperation(SET, key_path, plist_value(value)))
        return self

    def add(self, key_path: str, type: str, value=None):
        value = None if value is None else plist_value(value)
        self.operations.append(PlistOperation(ADD, key_path, value, type))
        return self

    def delete(self, key_path: str):
        self.operations.append(PlistOperation(DELETE, key_path))
        return self

    def commands(self) -> list:
        return [op.command() for op in self.operations]

    def __iter__(self):
        return iter(self.operations)

    def __len__(self):
        return len(self.operations)


class PlistBuddy:
    """Applies patches with /usr/libexec/PlistBuddy, never batching operations."""

    def __init__(self, runner: ProcessRunner = None, tool: str = PLIST_BUDDY):
        self.runner = runner or ProcessRunner()
        self.tool = tool

    def apply(self, patch: PlistPatch):
        for operation in patch:
            self.runner.check([self.tool, "-c", operation.command(), str(patch.plist.absolute())])

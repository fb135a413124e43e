"""Install/uninstall hook scripts collected for the packaging backends."""

from enum import Enum


class Hook(Enum):
    PREINST = "preinst"
    POSTINST = "postinst"
    PRERM = "prerm"
    POSTRM = "postrm"


class LifecycleScripts:
    """
    Ordered, append-only script fragments for the four hook points.

    Packaging backends turn these into platform script files; nothing here
    removes or replaces an entry.
    """

    def __init__(self):
        self._scripts = {hook: [] for hook in Hook}

    def append(self, hook, content: str):
        self._scripts[Hook(hook)].append(content)

    def get(self, hook) -> tuple:
        return tuple(self._scripts[Hook(hook)])

    @property
    def preinst(self) -> tuple:
        return self.get(Hook.PREINST)

    @property
    def postinst(self) -> tuple:
        return self.get(Hook.POSTINST)

    @property
    def prerm(self) -> tuple:
        return self.get(Hook.PRERM)

    @property
    def postrm(self) -> tuple:
        return self.get(Hook.POSTRM)

    def __bool__(self):
        return any(self._scripts.values())

"""Applications, services and the DMG task settings declared in setup.yaml."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import ConfigurationError
from .scripts import LifecycleScripts

VIEWER = "Viewer"
EDITOR = "Editor"

ROOT_USER = "root"


def sanitize(name: str) -> str:
    """Strip every character that is not a letter or digit: 'My App 2' -> 'MyApp2'."""
    return re.sub(r"[^A-Za-z0-9]", "", name)


@dataclass
class DocumentType:
    extensions: List[str]
    name: str
    role: str = VIEWER

    def __post_init__(self):
        if self.role not in (VIEWER, EDITOR):
            raise ConfigurationError(f"Document type role must be {VIEWER} or {EDITOR}, not {self.role!r}")


@dataclass
class Application:
    display_name: str
    main_class: Optional[str] = None
    main_jar: Optional[str] = None
    work_dir: Optional[str] = None
    executable: Optional[str] = None
    vm_arguments: List[str] = field(default_factory=list)
    start_arguments: str = ""
    document_types: List[DocumentType] = field(default_factory=list)
    schemes: List[str] = field(default_factory=list)

    @property
    def executable_name(self) -> str:
        return self.executable or self.display_name


@dataclass
class Service:
    id: str
    display_name: str
    description: str = ""
    keep_alive: bool = False
    start_on_boot: bool = True
    daemon_user: str = ROOT_USER

    @property
    def internal_name(self) -> str:
        return sanitize(self.display_name)


@dataclass
class PreferencesLink:
    title: str
    action: str
    run_as_root: bool = False


@dataclass
class CodeSign:
    identity: str = "-"
    keychain: Optional[str] = None
    entitlements: Optional[str] = None


@dataclass
class SetupTask:
    """A task consuming the bundle builder: where it builds and what it ships."""

    build_dir: Path
    temporary_dir: Path
    payload: List[str] = field(default_factory=list)
    scripts: LifecycleScripts = field(default_factory=LifecycleScripts)
    webstart: bool = False

    produces_image = False


@dataclass
class DmgTask(SetupTask):
    """Settings of the image-producing task."""

    architectures: List[str] = field(default_factory=list)
    native_libraries: List[str] = field(default_factory=list)
    jre_includes: List[str] = field(default_factory=list)
    jre_excludes: List[str] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    preferences_links: List[PreferencesLink] = field(default_factory=list)
    code_sign: Optional[CodeSign] = None

    produces_image = True

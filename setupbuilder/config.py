"""
Setup configuration: global metadata with layered defaults, loaded from setup.yaml.

Every accessor is a pure function of the stored values plus the ambient
project metadata and always returns a value. Whether a value is required is
decided by the consumer, not here.
"""

import datetime
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigurationError
from .icons import IconSpec
from .model import (Application, CodeSign, DmgTask, DocumentType, PreferencesLink,
                    Service, ROOT_USER, VIEWER)
from .scripts import Hook

CONFIG_NAME = "setup.yaml"
SIGNING_IDENTITY_ENV = "SETUPBUILDER_SIGNING_IDENTITY"

UNSPECIFIED = "unspecified"
DEFAULT_VERSION = "1.0"
DEFAULT_VENDOR = "My Company"
DEFAULT_JRE_TARGET = "jre"


@dataclass
class ProjectInfo:
    """Ambient metadata of the project being packaged."""

    name: str
    root: Path = field(default_factory=Path)
    version: Optional[str] = None
    archives_base_name: Optional[str] = None
    build_dir: Optional[Path] = None

    def file(self, value) -> Path:
        """Resolve a path relative to the project root."""
        path = Path(os.path.expanduser(str(value)))
        return path if path.is_absolute() else self.root / path

    @property
    def build_path(self) -> Path:
        return self.file(self.build_dir) if self.build_dir else self.root / "build"


class SetupConfiguration:
    """Global setup metadata shared by all installer tasks."""

    def __init__(self, project: ProjectInfo, vendor=None, application=None, version=None,
                 app_identifier=None, archive_name=None, icons: IconSpec = None,
                 bundle_jre=None, bundle_jre_target=None, main_class=None, main_jar=None,
                 description=None, copyright=None, destination_dir="distributions",
                 fail_on_empty_from=True):
        self.project = project
        self._vendor = vendor
        self._application = application
        self._version = version
        self._app_identifier = app_identifier
        self._archive_name = archive_name
        self.icons = icons
        self.bundle_jre = bundle_jre
        self._bundle_jre_target = bundle_jre_target
        self.main_class = main_class
        self.main_jar = main_jar
        self._description = description
        self._copyright = copyright
        self._destination_dir = destination_dir
        self.fail_on_empty_from = fail_on_empty_from

    @property
    def vendor(self) -> str:
        return self._vendor if self._vendor is not None else DEFAULT_VENDOR

    @property
    def application(self) -> str:
        return self._application if self._application is not None else self.project.name

    @property
    def version(self) -> str:
        """Explicit version, else the project version unless 'unspecified', else 1.0."""
        if self._version is not None:
            return self._version
        if self.project.version is not None:
            version = str(self.project.version)
            if version.lower() != UNSPECIFIED:
                return version
        return DEFAULT_VERSION

    @property
    def app_identifier(self) -> str:
        if self._app_identifier is not None:
            return self._app_identifier
        if self.project.archives_base_name is not None:
            return self.project.archives_base_name
        return self.project.name

    @property
    def archive_name(self) -> str:
        if self._archive_name is not None:
            return self._archive_name
        return f"{self.app_identifier}-{self.version}"

    @property
    def bundle_jre_target(self) -> str:
        if self._bundle_jre_target is None:
            return DEFAULT_JRE_TARGET
        return self._bundle_jre_target.strip("/")

    @property
    def description(self) -> str:
        return self._description if self._description is not None else ""

    @property
    def copyright(self) -> str:
        if self._copyright is not None:
            return self._copyright
        return f"© Copyright {datetime.date.today().year} by {self.vendor}"

    @property
    def destination_dir(self) -> Path:
        return self.project.build_path / str(self._destination_dir)

    def resolve_icon(self, target_dir: Path, fmt: str) -> Path:
        """Copy the icon of the given format into target_dir and return the copy."""
        if self.icons is None:
            raise ConfigurationError(
                "You have to specify a valid icon file.\n\n"
                f"\tPlease set the parameter 'icons' of the setupBuilder configuration "
                f"to an existing '*.{fmt}' file.\n")
        source = self.icons.resolve(fmt)
        target_dir = Path(target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{source.stem}.{fmt}"
        if source.resolve() != target.resolve():
            shutil.copy2(source, target)
        return target


@dataclass
class Setup:
    config: SetupConfiguration
    application: Application
    task: DmgTask


# ─── setup.yaml loading ──────────────────────────────────────────────────────


class SetupLoader(yaml.SafeLoader):
    """SafeLoader that keeps float-looking scalars as text, so version: 2.10 stays "2.10"."""


SetupLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:float"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

PROJECT_KEYS = {"name", "version", "archivesBaseName", "buildDir"}
SETUP_KEYS = {
    "vendor", "application", "version", "appIdentifier", "archiveName", "icons",
    "bundleJre", "bundleJreTarget", "mainClass", "mainJar", "description", "copyright",
    "destinationDir", "failOnEmptyFrom", "from", "workDir", "executable",
    "javaVMArguments", "startArguments", "documentType", "schemes", "services",
}
DMG_KEYS = {
    "architecture", "nativeLibraries", "jreIncludes", "jreExcludes", "preferencesLinks",
    "codeSign", "webstart", "preinst", "postinst", "prerm", "postrm",
}


def _section(data: dict, name: str, allowed: set) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{name}' must be a mapping")
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ConfigurationError(f"Unknown '{name}' settings: {', '.join(unknown)}")
    return section


def _text(mapping: dict, key: str) -> Optional[str]:
    """A string setting. Floats and booleans are rejected: YAML reads 2.10 as 2.1."""
    value = mapping.get(key)
    if value is None:
        return None
    if isinstance(value, (bool, float)):
        raise ConfigurationError(
            f"'{key}' was read as {type(value).__name__} {value!r}; quote it in {CONFIG_NAME}: "
            f"{key}: \"...\"")
    return str(value)


def _flag(mapping: dict, key: str, default: bool) -> bool:
    value = mapping.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be true or false, not {value!r}")
    return value


def _list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _document_type(entry: dict) -> DocumentType:
    try:
        return DocumentType(extensions=_list(entry["extensions"]), name=str(entry["name"]),
                            role=entry.get("role", VIEWER))
    except (KeyError, TypeError, AttributeError):
        raise ConfigurationError(f"Invalid documentType entry: {entry!r}")


def _service(entry: dict) -> Service:
    try:
        return Service(
            id=str(entry["id"]),
            display_name=str(entry["displayName"]),
            description=str(entry.get("description", "")),
            keep_alive=_flag(entry, "keepAlive", False),
            start_on_boot=_flag(entry, "startOnBoot", True),
            daemon_user=str(entry.get("daemonUser", ROOT_USER)),
        )
    except (KeyError, TypeError, AttributeError):
        raise ConfigurationError(f"Invalid service entry: {entry!r}")


def _preferences_link(entry: dict) -> PreferencesLink:
    try:
        return PreferencesLink(title=str(entry["title"]), action=str(entry["action"]),
                               run_as_root=_flag(entry, "runAsRoot", False))
    except (KeyError, TypeError, AttributeError):
        raise ConfigurationError(f"Invalid preferencesLinks entry: {entry!r}")


def _code_sign(value) -> Optional[CodeSign]:
    identity = os.environ.get(SIGNING_IDENTITY_ENV)
    if value is None and not identity:
        return None
    value = value or {}
    if not isinstance(value, dict):
        raise ConfigurationError("'codeSign' must be a mapping")
    return CodeSign(identity=identity or str(value.get("identity", "-")),
                    keychain=_text(value, "keychain"),
                    entitlements=_text(value, "entitlements"))


def parse_setup(data: dict, root: Path) -> Setup:
    """Build the configuration, main application and DMG task from parsed YAML."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_NAME} must contain a mapping")
    unknown = sorted(set(data) - {"project", "setupBuilder", "dmg"})
    if unknown:
        raise ConfigurationError(f"Unknown sections: {', '.join(unknown)}")

    proj = _section(data, "project", PROJECT_KEYS)
    sb = _section(data, "setupBuilder", SETUP_KEYS)
    dmg = _section(data, "dmg", DMG_KEYS)

    project = ProjectInfo(
        name=str(proj.get("name", root.name)),
        root=root,
        version=_text(proj, "version"),
        archives_base_name=_text(proj, "archivesBaseName"),
        build_dir=_text(proj, "buildDir"),
    )
    config = SetupConfiguration(
        project,
        vendor=_text(sb, "vendor"),
        application=_text(sb, "application"),
        version=_text(sb, "version"),
        app_identifier=_text(sb, "appIdentifier"),
        archive_name=_text(sb, "archiveName"),
        icons=IconSpec.from_config(sb.get("icons"), root),
        bundle_jre=_text(sb, "bundleJre"),
        bundle_jre_target=_text(sb, "bundleJreTarget"),
        main_class=_text(sb, "mainClass"),
        main_jar=_text(sb, "mainJar"),
        description=_text(sb, "description"),
        copyright=_text(sb, "copyright"),
        destination_dir=sb.get("destinationDir", "distributions"),
        fail_on_empty_from=_flag(sb, "failOnEmptyFrom", True),
    )

    application = Application(
        display_name=config.application,
        main_class=config.main_class,
        main_jar=config.main_jar,
        work_dir=_text(sb, "workDir"),
        executable=_text(sb, "executable"),
        vm_arguments=_list(sb.get("javaVMArguments")),
        start_arguments=str(sb.get("startArguments") or ""),
        document_types=[_document_type(d) for d in sb.get("documentType") or []],
        schemes=_list(sb.get("schemes")),
    )

    tmp = project.build_path / "tmp" / "dmg"
    task = DmgTask(
        build_dir=tmp,
        temporary_dir=tmp,
        payload=_list(sb.get("from")),
        webstart=_flag(dmg, "webstart", False),
        architectures=_list(dmg.get("architecture")),
        native_libraries=_list(dmg.get("nativeLibraries")),
        jre_includes=_list(dmg.get("jreIncludes")),
        jre_excludes=_list(dmg.get("jreExcludes")),
        services=[_service(s) for s in sb.get("services") or []],
        preferences_links=[_preferences_link(p) for p in dmg.get("preferencesLinks") or []],
        code_sign=_code_sign(dmg.get("codeSign")),
    )
    for hook in Hook:
        for content in _list(dmg.get(hook.value)):
            task.scripts.append(hook, content)

    return Setup(config, application, task)


def load_setup(project_root: Path, config_file: Path = None) -> Setup:
    """Load setup.yaml (or an explicit file) for the project at project_root."""
    project_root = Path(project_root).resolve()
    path = Path(config_file) if config_file else project_root / CONFIG_NAME
    if not path.exists():
        raise ConfigurationError(f"No {path.name} found in {path.parent}")
    try:
        data = yaml.load(path.read_text(encoding="utf-8"), Loader=SetupLoader) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {path.name}: {e}")
    print(f"  Config: {path.name}")
    return parse_setup(data, project_root)

"""
App bundler: turns a BundleConfig into a <Name>.app directory.

Writes Contents/Info.plist, the launcher in Contents/MacOS, the icon in
Contents/Resources and the filtered Java runtime in Contents/PlugIns.
execute() reports failure through its return code like any external tool.
"""

import fnmatch
import os
import plistlib
import shutil
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

PLUGINS_DIR = "PlugIns"


@dataclass
class BundleDocument:
    extensions: str
    name: str
    role: str
    icon: str


@dataclass
class Runtime:
    home: Path
    target: str = "jre"
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)

    def accepts(self, rel: str) -> bool:
        if self.includes and not any(fnmatch.fnmatch(rel, p) for p in self.includes):
            return False
        return not any(fnmatch.fnmatch(rel, p) for p in self.excludes)


@dataclass
class BundleConfig:
    output_dir: Path = None
    name: str = None
    display_name: str = None
    version: str = None
    short_version: str = None
    identifier: str = None
    executable_name: str = None
    main_class_name: Optional[str] = None
    jar_launcher_name: Optional[str] = None
    working_directory: Optional[str] = None
    copyright: str = ""
    icon: Optional[Path] = None
    ignore_psn: bool = True
    options: List[str] = field(default_factory=list)
    arguments: List[str] = field(default_factory=list)
    schemes: List[str] = field(default_factory=list)
    documents: List[BundleDocument] = field(default_factory=list)
    architectures: List[str] = field(default_factory=list)
    library_paths: List[str] = field(default_factory=list)
    runtime: Optional[Runtime] = None

    @property
    def bundle_path(self) -> Path:
        return Path(self.output_dir) / f"{self.name}.app"


def info_plist(config: BundleConfig) -> dict:
    """Info.plist content for the bundle."""
    info = {
        "CFBundleDevelopmentRegion": "English",
        "CFBundleExecutable": config.executable_name,
        "CFBundleIdentifier": config.identifier,
        "CFBundleDisplayName": config.display_name,
        "CFBundleInfoDictionaryVersion": "6.0",
        "CFBundleName": config.name,
        "CFBundlePackageType": "APPL",
        "CFBundleShortVersionString": config.short_version,
        "CFBundleSignature": "????",
        "CFBundleVersion": config.version,
        "NSHumanReadableCopyright": config.copyright,
        "NSHighResolutionCapable": True,
        "IgnorePSN": config.ignore_psn,
    }
    if config.icon:
        info["CFBundleIconFile"] = Path(config.icon).name
    if config.main_class_name:
        info["JVMMainClassName"] = config.main_class_name
    if config.jar_launcher_name:
        info["JVMJarLauncher"] = config.jar_launcher_name
    if config.working_directory:
        info["WorkingDirectory"] = config.working_directory
    if config.runtime:
        info["JVMRuntime"] = config.runtime.target
    info["JVMOptions"] = list(config.options)
    info["JVMArguments"] = list(config.arguments)
    if config.architectures:
        info["LSArchitecturePriority"] = list(config.architectures)
    if config.library_paths:
        info["JVMLibraryPath"] = ":".join(config.library_paths)
    if config.documents:
        info["CFBundleDocumentTypes"] = [{
            "CFBundleTypeExtensions": doc.extensions.split(","),
            "CFBundleTypeName": doc.name,
            "CFBundleTypeRole": doc.role,
            "CFBundleTypeIconFile": Path(doc.icon).name,
        } for doc in config.documents]
    if config.schemes:
        info["CFBundleURLTypes"] = [{
            "CFBundleURLName": config.identifier,
            "CFBundleURLSchemes": list(config.schemes),
        }]
    return info


def shell_quote(value: str) -> str:
    return "'" + value.replace("'", "'\\''") + "'"


def launch_script(config: BundleConfig) -> str:
    """Shell launcher that starts the JVM from the embedded runtime or the system one."""
    lines = [
        "#!/bin/bash",
        'APP_ROOT="$(cd "$(dirname "$0")/../.." && pwd)"',
        "",
    ]
    if config.runtime:
        runtime = f'"$APP_ROOT/Contents/{PLUGINS_DIR}/{config.runtime.target}'
        lines += [
            f'JAVA={runtime}/bin/java"',
            f'[ -x "$JAVA" ] || JAVA={runtime}/jre/bin/java"',
        ]
    else:
        lines.append('JAVA="$(/usr/libexec/java_home)/bin/java"')
    lines.append(f'cd "{config.working_directory or "$APP_ROOT/Contents/Java"}"')

    cmd = ['exec "$JAVA"', f"-Xdock:name={shell_quote(config.display_name)}"]
    if config.icon:
        cmd.append(f'-Xdock:icon="$APP_ROOT/Contents/Resources/{Path(config.icon).name}"')
    if config.library_paths:
        cmd.append(shell_quote("-Djava.library.path=" + ":".join(config.library_paths)))
    cmd += [shell_quote(o) for o in config.options]
    if config.jar_launcher_name:
        cmd += ["-cp", f'"$APP_ROOT/Contents/Java/{config.jar_launcher_name}:$APP_ROOT/Contents/Java/*"']
    cmd.append(shell_quote(config.main_class_name))
    cmd += [shell_quote(a) for a in config.arguments]
    cmd.append('"$@"')
    lines += [" ".join(cmd), ""]
    return "\n".join(lines)


class AppBundler:
    """Writes the .app skeleton. An explicit launcher binary replaces the shell launcher."""

    def __init__(self, launcher: Path = None):
        self.launcher = launcher

    def execute(self, config: BundleConfig) -> int:
        bundle = config.bundle_path
        contents = bundle / "Contents"
        print(f"  Bundling {bundle.name}")
        try:
            if bundle.exists():
                shutil.rmtree(bundle)
            for d in ("MacOS", "Resources", "Java"):
                (contents / d).mkdir(parents=True, exist_ok=True)

            with (contents / "Info.plist").open("wb") as fp:
                plistlib.dump(info_plist(config), fp)
            (contents / "PkgInfo").write_text("APPL????")

            executable = contents / "MacOS" / config.executable_name
            if self.launcher:
                shutil.copy2(self.launcher, executable)
            elif config.main_class_name:
                executable.write_text(launch_script(config))
            else:
                print("  WARNING: no main class and no launcher binary, bundle has no executable")
            if executable.exists():
                executable.chmod(executable.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

            if config.icon:
                shutil.copy2(config.icon, contents / "Resources" / Path(config.icon).name)

            if config.runtime:
                copied = copy_runtime(config.runtime, contents / PLUGINS_DIR / config.runtime.target)
                print(f"  Runtime: {copied} file(s) -> {PLUGINS_DIR}/{config.runtime.target}")
        except OSError as e:
            print(f"  ERROR: bundling failed: {e}")
            return 1
        return 0


def copy_runtime(runtime: Runtime, target: Path) -> int:
    """Copy the runtime files accepted by its include/exclude patterns."""
    home = Path(runtime.home)
    count = 0
    for dirpath, dirnames, filenames in os.walk(home):
        dirnames.sort()
        for name in sorted(filenames):
            src = Path(dirpath) / name
            rel = src.relative_to(home).as_posix()
            if not runtime.accepts(rel):
                continue
            dst = target / rel
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst, follow_symlinks=False)
            count += 1
    return count

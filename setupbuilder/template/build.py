#!/usr/bin/env python3
"""
SetupBuilderOSXPrefPane Build Script

Usage:
  python3 build.py clean            # Remove build artifacts
  python3 build.py xcodebuild       # Compile the preference pane bundle
  python3 build.py clean xcodebuild # Both, in order
"""

import argparse
import shutil
import subprocess
from pathlib import Path

ROOT = Path(__file__).parent
NAME = "SetupBuilderOSXPrefPane"
BUILD_DIR = ROOT / "build"
RELEASE_DIR = BUILD_DIR / "sym" / "Release"
SOURCES = ROOT / "Sources"

ARCHS = ["arm64", "x86_64"]
MIN_MACOS = "10.13"


def run(cmd, cwd=None, check=True):
    print(f"  $ {' '.join(str(c) for c in cmd)}")
    return subprocess.run([str(c) for c in cmd], cwd=cwd, check=check)


def clean():
    print("\n=== Cleaning ===")
    if BUILD_DIR.exists():
        shutil.rmtree(BUILD_DIR)
        print(f"  Removed {BUILD_DIR.name}/")


def xcodebuild():
    print(f"\n=== Building {NAME}.prefPane ===")
    bundle = RELEASE_DIR / f"{NAME}.prefPane"
    contents = bundle / "Contents"
    macos = contents / "MacOS"
    resources = contents / "Resources"
    macos.mkdir(parents=True, exist_ok=True)
    resources.mkdir(parents=True, exist_ok=True)

    cmd = ["clang", "-bundle", "-fobjc-arc", f"-mmacosx-version-min={MIN_MACOS}"]
    for arch in ARCHS:
        cmd += ["-arch", arch]
    cmd += ["-framework", "Cocoa", "-framework", "PreferencePanes",
            "-o", macos / NAME, *sorted(SOURCES.glob("*.m"))]
    run(cmd, cwd=ROOT)

    shutil.copy2(ROOT / "Info.plist", contents / "Info.plist")
    for item in (ROOT / "Resources").iterdir():
        shutil.copy2(item, resources / item.name)
    print(f"  {bundle}")


def main():
    parser = argparse.ArgumentParser(description=f"Build {NAME}.prefPane")
    parser.add_argument("tasks", nargs="+", choices=["clean", "xcodebuild"],
                        help="Tasks to run, in order")
    args = parser.parse_args()

    for task in args.tasks:
        if task == "clean":
            clean()
        elif task == "xcodebuild":
            xcodebuild()


if __name__ == "__main__":
    main()

"""
setupbuilder: macOS installer build CLI

Reads setup.yaml from the project directory and builds the application
bundle with its preference panes.

Usage:
  setupbuilder <project_root> build [--webstart]
  setupbuilder <project_root> show
  setupbuilder <project_root> clean
"""

import argparse
import shutil
import sys
from pathlib import Path

from .config import load_setup
from .dmg import DmgBuilder
from .errors import SetupBuilderError
from .scripts import Hook


def cmd_build(setup, webstart=False):
    if webstart:
        setup.task.webstart = True
    return DmgBuilder(setup).build()


def cmd_show(setup):
    config, task, app = setup.config, setup.task, setup.application
    print(f"\n=== {config.application} ===")
    print(f"  Vendor:       {config.vendor}")
    print(f"  Version:      {config.version}")
    print(f"  Identifier:   {config.app_identifier}")
    print(f"  Archive:      {config.archive_name}")
    print(f"  Copyright:    {config.copyright}")
    print(f"  Main class:   {app.main_class or '-'}")
    print(f"  Main jar:     {app.main_jar or '-'}")
    if config.bundle_jre is not None:
        print(f"  Bundle JRE:   {config.bundle_jre} -> {config.bundle_jre_target}")
    print(f"  Destination:  {config.destination_dir}")
    for service in task.services:
        print(f"  Service:      {service.display_name} ({service.id}, user {service.daemon_user})")
    for link in task.preferences_links:
        print(f"  Link:         {link.title} -> {link.action}{' (root)' if link.run_as_root else ''}")
    for hook in Hook:
        scripts = task.scripts.get(hook)
        if scripts:
            print(f"  {hook.value + ':':<13} {len(scripts)} fragment(s)")


def cmd_clean(setup):
    print("\n=== Cleaning ===")
    build_dir = setup.config.project.build_path
    if build_dir.exists():
        shutil.rmtree(build_dir)
        print(f"  Removed {build_dir}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build macOS application bundles and preference panes")
    parser.add_argument("project_root", type=str, help="Path to the project (contains setup.yaml)")
    parser.add_argument("command", choices=["build", "show", "clean"], help="Command to run")
    parser.add_argument("--config", type=str, help="Explicit setup.yaml path")
    parser.add_argument("--webstart", action="store_true",
                        help="Webstart build, main class and jar are not required")

    args = parser.parse_args(argv)
    project_root = Path(args.project_root).resolve()

    if not project_root.exists():
        print(f"ERROR: Project directory not found: {project_root}")
        return 1

    try:
        setup = load_setup(project_root, args.config)
        if args.command == "build":
            cmd_build(setup, webstart=args.webstart)
        elif args.command == "show":
            cmd_show(setup)
        elif args.command == "clean":
            cmd_clean(setup)
    except SetupBuilderError as e:
        print(f"ERROR: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

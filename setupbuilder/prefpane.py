"""
Preference pane creation for a service.

Stage A runs before the application bundle is built: init() materializes the
pane template with the service's internal name, compile() runs the nested
build of that template. Stage B, create(), runs once the bundle exists: it
moves the compiled pane into the bundle's Resources, patches the pane's
Info.plist and service.plist and finally signs it.

init() returns the PipelineState that the later steps read, so the order of
the steps is carried by the data they pass along.
"""

import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

from .bundle import BundleAssembler, application_identifier
from .codesign import CodeSigner
from .config import SetupConfiguration
from .errors import MissingArtifactError
from .model import ROOT_USER, Application, DmgTask, Service
from .plist import PlistBuddy, PlistPatch
from .process import ProcessRunner
from .template import TemplateStore, materialize

PLACEHOLDER = "SetupBuilderOSXPrefPane"
TEMPLATE_PACKAGE = "setupbuilder"
TEMPLATE_PATH = "template"
BUILD_DESCRIPTOR = "build.py"
NESTED_TASKS = ("clean", "xcodebuild")
ICON_NAME = "ProductIcon.icns"


@dataclass
class PipelineState:
    working_dir: Path
    source: Path

    @property
    def descriptor(self) -> Path:
        return self.source / BUILD_DESCRIPTOR


class NestedBuild:
    """Runs a template's build script with an ordered list of tasks."""

    def __init__(self, runner: ProcessRunner = None, python: str = sys.executable):
        self.runner = runner or ProcessRunner()
        self.python = python

    def run(self, descriptor: Path, tasks):
        descriptor = Path(descriptor)
        self.runner.check([self.python, descriptor.name, *tasks], cwd=descriptor.parent)


class PreferencePaneOrchestrator(BundleAssembler):
    """Builds the preference pane of one service into an application bundle."""

    def __init__(self, task: DmgTask, setup: SetupConfiguration, application: Application,
                 service: Service, runner: ProcessRunner = None, store: TemplateStore = None,
                 nested_build: NestedBuild = None, plist: PlistBuddy = None,
                 signer: CodeSigner = None):
        super().__init__(task, setup, runner)
        self.application = application
        self.service = service
        self.display_name = service.display_name
        self.internal_name = service.internal_name
        self.store = store or TemplateStore.from_package(TEMPLATE_PACKAGE, TEMPLATE_PATH)
        self.nested_build = nested_build or NestedBuild(self.runner)
        self.plist = plist or PlistBuddy(self.runner)
        if signer is None and task.code_sign is not None:
            signer = CodeSigner(task.code_sign, self.runner)
        self.signer = signer

    @property
    def substitutions(self) -> dict:
        return {PLACEHOLDER.encode("utf-8"): self.internal_name.encode("utf-8")}

    @property
    def pane_identifier(self) -> str:
        return application_identifier(self.setup, self.application.display_name) + ".prefPane"

    # ─── Stage A ─────────────────────────────────────────────────────────────

    def init(self) -> PipelineState:
        """Unpack the pane template with the service's internal name."""
        working_dir = Path(self.task.temporary_dir) / self.internal_name
        if working_dir.exists():
            shutil.rmtree(working_dir)
        working_dir.mkdir(parents=True)
        files = materialize(self.store, working_dir, self.substitutions)
        print(f"  Preference pane sources: {len(files)} file(s) -> {working_dir}")
        return PipelineState(working_dir=working_dir, source=working_dir)

    def compile(self, state: PipelineState):
        """Run the nested build of the unpacked template."""
        print(f"\n=== Building {self.display_name} Preference Pane ===")
        self.nested_build.run(state.descriptor, NESTED_TASKS)

    def prepare(self) -> PipelineState:
        state = self.init()
        self.compile(state)
        return state

    # ─── Stage B ─────────────────────────────────────────────────────────────

    def artifact(self, state: PipelineState) -> Path:
        return state.source / "build" / "sym" / "Release" / f"{self.internal_name}.prefPane"

    def pane_location(self) -> Path:
        resources = self.bundle_path(self.application) / "Contents" / "Resources"
        return resources / f"{self.display_name}.prefPane"

    def info_plist_patch(self, plist: Path) -> PlistPatch:
        display = self.display_name
        return (PlistPatch(plist)
                .set(":CFBundleIdentifier", self.pane_identifier)
                .set(":CFBundleName", f"{display} Preference Pane")
                .set(":CFBundleExecutable", self.internal_name)
                .set(":NSPrefPaneIconLabel", display)
                .add(":NSPrefPaneHelperApplication", "String", f"{display} Helper")
                .add(":NSAppleEventsUsageDescription", "String",
                     f"Helper application to provide priviledged access to {display}"))

    def service_plist_patch(self, plist: Path) -> PlistPatch:
        service = self.service
        patch = (PlistPatch(plist)
                 .set(":Name", self.display_name)
                 .set(":Label", service.id)
                 .set(":Description", service.description or self.setup.description)
                 .set(":Version", self.setup.version)
                 .set(":KeepAlive", service.keep_alive)
                 .set(":RunAtBoot", service.start_on_boot)
                 .set(":RunAtLoad", True))

        if service.daemon_user != ROOT_USER:
            patch.add(":UserName", "String", service.daemon_user)
            patch.add(":GroupName", "String", service.daemon_user)

        patch.delete(":starter")
        for i, link in enumerate(self.task.preferences_links):
            if i == 0:
                patch.add(":starter", "array")
            patch.add(":starter:", "dict")
            patch.add(f":starter:{i}:title", "string", link.title)
            patch.add(f":starter:{i}:action", "string", link.action)
            patch.add(f":starter:{i}:asuser", "string", service.daemon_user)
            patch.add(f":starter:{i}:asroot", "bool", "YES" if link.run_as_root else "NO")
        return patch

    def create(self, state: PipelineState) -> Path:
        """Move the compiled pane into the bundle, patch it and sign it."""
        binary = self.artifact(state)
        if not binary.exists():
            raise MissingArtifactError("Failed to create the Preferences Pane.")

        location = self.pane_location()
        location.parent.mkdir(parents=True, exist_ok=True)
        if location.exists():
            shutil.rmtree(location)
        shutil.move(str(binary), str(location))
        contents = location / "Contents"
        print(f"  Unpacked the Preference Pane to: {contents}")

        (contents / "Resources").mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.application_icon(), contents / "Resources" / ICON_NAME)

        self.plist.apply(self.info_plist_patch(contents / "Info.plist"))
        self.plist.apply(self.service_plist_patch(contents / "Resources" / "service.plist"))

        shutil.rmtree(state.working_dir)

        if self.signer is not None:
            self.signer.sign(location)
        return location

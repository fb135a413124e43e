import shutil
from pathlib import Path

import pytest

from setupbuilder.config import ProjectInfo, SetupConfiguration
from setupbuilder.icons import IconSpec
from setupbuilder.model import Application, DmgTask
from setupbuilder.process import ProcessResult, ProcessRunner


class FakeRunner(ProcessRunner):
    """Records every command instead of starting it."""

    def __init__(self, handlers=None):
        self.calls = []
        self.handlers = handlers or {}

    def run(self, cmd, cwd=None, capture=False):
        cmd = [str(c) for c in cmd]
        self.calls.append(cmd)
        handler = self.handlers.get(cmd[0])
        if callable(handler):
            return handler(cmd, cwd)
        if handler is not None:
            returncode, output = handler
            return ProcessResult(cmd, returncode, output)
        return ProcessResult(cmd, 0, "")

    def tools(self) -> list:
        return [Path(c[0]).name for c in self.calls]

    def plist_commands(self) -> list:
        return [c[2] for c in self.calls if c[0].endswith("PlistBuddy")]


class FakeNestedBuild:
    """Produces the compiled pane the way the template build would, without a compiler."""

    def __init__(self, produce=True):
        self.produce = produce
        self.calls = []

    def run(self, descriptor, tasks):
        descriptor = Path(descriptor)
        self.calls.append((descriptor, tuple(tasks)))
        if not self.produce:
            return
        root = descriptor.parent
        name = root.name
        contents = root / "build" / "sym" / "Release" / f"{name}.prefPane" / "Contents"
        (contents / "MacOS").mkdir(parents=True)
        (contents / "Resources").mkdir(parents=True)
        shutil.copy2(root / "Info.plist", contents / "Info.plist")
        shutil.copy2(root / "Resources" / "service.plist", contents / "Resources" / "service.plist")
        (contents / "MacOS" / name).write_bytes(b"\xcf\xfa\xed\xfe")


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "icons").mkdir(parents=True)
    (root / "icons" / "app.icns").write_bytes(b"icns")
    (root / "icons" / "app.png").write_bytes(b"png")
    libs = root / "build" / "libs"
    libs.mkdir(parents=True)
    (libs / "demo.jar").write_bytes(b"PK")
    return ProjectInfo(name="demo", root=root, version="2.1.0")


@pytest.fixture
def config(project):
    return SetupConfiguration(
        project,
        vendor="Example Corp",
        application="Demo",
        app_identifier="com.example.demo",
        icons=IconSpec.from_config("icons/app.icns", project.root),
        main_class="com.example.Main",
        main_jar="demo.jar",
    )


@pytest.fixture
def task(project):
    tmp = project.root / "build" / "tmp" / "dmg"
    return DmgTask(build_dir=tmp, temporary_dir=tmp, payload=["build/libs"])


@pytest.fixture
def application():
    return Application(display_name="Demo", main_class="com.example.Main", main_jar="demo.jar")

"""
The image task pipeline: builds the application bundle with one preference
pane per service.

Order is fixed: the application is validated and configured, stage A of
every pane runs (template + nested build), the bundler writes the
application bundle, stage B of every pane runs, then the bundle is signed.
Mastering the disk image from the result is left to the packaging backend.
"""

from pathlib import Path

from .appbundler import AppBundler
from .bundle import BundleAssembler
from .codesign import CodeSigner
from .config import Setup
from .prefpane import PreferencePaneOrchestrator
from .process import ProcessRunner


class DmgBuilder:

    def __init__(self, setup: Setup, runner: ProcessRunner = None, bundler: AppBundler = None,
                 pane_factory=PreferencePaneOrchestrator):
        self.setup = setup
        self.runner = runner or ProcessRunner()
        self.bundler = bundler or AppBundler()
        self.pane_factory = pane_factory

    def panes(self) -> list:
        setup = self.setup
        return [self.pane_factory(setup.task, setup.config, setup.application, service,
                                  runner=self.runner)
                for service in setup.task.services]

    def build(self) -> Path:
        setup = self.setup
        config, task, application = setup.config, setup.task, setup.application

        print(f"\n{'=' * 60}")
        print(f"  Building {config.application} v{config.version}")
        print(f"  Identifier: {config.app_identifier}")
        print(f"  Archive: {config.archive_name}")
        print(f"{'=' * 60}")

        Path(task.build_dir).mkdir(parents=True, exist_ok=True)

        # Validate the application before any nested build starts a process.
        assembler = BundleAssembler(task, config, runner=self.runner, bundler=self.bundler)
        assembler.prepare_application(application, task.webstart)

        panes = self.panes()
        states = [pane.prepare() for pane in panes]

        print(f"\n=== Building {application.display_name}.app ===")
        assembler.finish_application()
        assembler.copy_bundle_files(application)
        bundle = assembler.bundle_path(application)

        for pane, state in zip(panes, states):
            pane.create(state)

        if task.code_sign is not None:
            CodeSigner(task.code_sign, self.runner).sign(bundle)

        print(f"\n{'=' * 60}")
        print(f"  {bundle}")
        for pane in panes:
            print(f"  Preference pane: {pane.display_name}")
        print(f"{'=' * 60}\n")
        return bundle

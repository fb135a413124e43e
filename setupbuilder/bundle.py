"""
Application bundle assembly.

BundleAssembler drives one .app build through fixed phases: prepare the
bundle identity, validate and configure the launcher, embed the Java runtime,
run the bundler, then copy the payload and normalize permissions. The first
failure ends the build.
"""

import shutil
from pathlib import Path

from .appbundler import AppBundler, BundleConfig, BundleDocument, Runtime
from .config import SetupConfiguration
from .errors import ConfigurationError, ExternalToolError
from .model import Application, SetupTask, sanitize
from .process import ProcessRunner

JAVA_HOME = "/usr/libexec/java_home"
DEFAULT_RUNTIME_INCLUDES = ["jre/bin/java"]


def short_version(version: str) -> str:
    """Cut the version after its second component: 1.2.3.4 -> 1.2."""
    idx = version.find(".")
    if idx >= 0:
        idx = version.find(".", idx + 1)
        if idx >= 0:
            return version[:idx]
    return version


def split_arguments(arguments: str) -> list:
    return [arg for arg in (arguments or "").split() if arg]


def application_identifier(setup: SetupConfiguration, display_name: str) -> str:
    """The app identifier, suffixed with the display name for secondary applications."""
    identifier = setup.app_identifier
    if display_name != setup.application:
        identifier += "." + sanitize(display_name)
    return identifier


class BundleAssembler:
    """Builds <display name>.app in the task's build directory."""

    def __init__(self, task: SetupTask, setup: SetupConfiguration,
                 runner: ProcessRunner = None, bundler: AppBundler = None):
        self.task = task
        self.setup = setup
        self.runner = runner or ProcessRunner()
        self.bundler = bundler or AppBundler()
        self.build_dir = Path(task.build_dir)
        self.bundle = BundleConfig()
        self._icon = None

    @property
    def identifier(self) -> str:
        return self.bundle.identifier

    def application_icon(self) -> Path:
        """The icns icon of the application, copied into the build directory."""
        if self._icon is None:
            self._icon = self.setup.resolve_icon(self.build_dir, "icns")
        return self._icon

    def bundle_path(self, application: Application) -> Path:
        return self.build_dir / f"{application.display_name}.app"

    # ─── Phases ──────────────────────────────────────────────────────────────

    def prepare_application(self, application: Application, webstart=False):
        """Set identity, version, launcher and associations. Raises before any process runs."""
        app_name = application.display_name
        print(f"  BuildDir now: {self.build_dir}")

        bundle = self.bundle
        bundle.output_dir = self.build_dir
        bundle.name = app_name
        bundle.display_name = app_name
        bundle.version = self.setup.version
        bundle.short_version = short_version(bundle.version)

        main_jar = application.main_jar
        if application.work_dir is not None:
            bundle.working_directory = str(Path("$APP_ROOT/Contents/Java") / application.work_dir)
            if main_jar is not None:
                main_jar = str(Path(application.work_dir) / main_jar)

        bundle.executable_name = application.executable_name

        bundle.identifier = application_identifier(self.setup, app_name)

        if not webstart:
            if application.main_class is None:
                raise ConfigurationError(
                    "A main class is required for the application. You have to configure at least "
                    "the following:\n\n\tsetupBuilder:\n\t  mainClass: your.org.main.class\n")
            if main_jar is None:
                raise ConfigurationError(
                    "A main jar file is required for the application. You have to configure at least "
                    "the following:\n\n\tsetupBuilder:\n\t  mainJar: /path/to/yourMain.jar\n")
            bundle.main_class_name = application.main_class
            bundle.jar_launcher_name = main_jar
            bundle.options.extend(application.vm_arguments)
            bundle.arguments.extend(split_arguments(application.start_arguments))

        bundle.ignore_psn = True
        bundle.copyright = self.setup.copyright
        bundle.icon = self.application_icon()

        self.set_document_types(application.document_types)
        for scheme in application.schemes:
            self.add_scheme(scheme)

        if self.task.produces_image:
            bundle.architectures.extend(self.task.architectures)
            bundle.library_paths.extend(self.task.native_libraries)

    def set_document_types(self, documents):
        for doc in documents:
            self.bundle.documents.append(BundleDocument(
                extensions=",".join(doc.extensions),
                name=doc.name,
                role=doc.role,
                icon=str(self.application_icon()),
            ))

    def add_scheme(self, scheme: str):
        """Register a URL scheme that launches the application. Empty values are ignored."""
        if not scheme:
            return
        self.bundle.schemes.append(scheme)

    def bundle_jre(self):
        """Attach the configured Java runtime, locating it by version if it is not a directory."""
        jre = self.setup.bundle_jre
        if jre is None:
            return
        try:
            jre_dir = self.setup.project.file(jre)
        except (TypeError, ValueError):
            jre_dir = None
        if jre_dir is None or not jre_dir.is_dir():
            result = self.runner.check([JAVA_HOME, "-v", str(jre), "-F"], capture=True)
            located = result.output.strip()
            jre_dir = Path(located) if located else None
            if jre_dir is None or not jre_dir.is_dir():
                raise ExternalToolError(
                    f"bundleJre version {jre} can not be found in: {located or '(no output)'}")
        print(f"  Bundle JRE: {jre_dir}")

        runtime = Runtime(home=jre_dir, target=self.setup.bundle_jre_target)
        if self.task.produces_image:
            runtime.includes.extend(self.task.jre_includes)
            runtime.excludes.extend(self.task.jre_excludes)
        else:
            runtime.includes.extend(DEFAULT_RUNTIME_INCLUDES)
        self.bundle.runtime = runtime

    def finish_application(self):
        """Embed the runtime and run the bundler."""
        self.bundle_jre()
        returncode = self.bundler.execute(self.bundle)
        if returncode != 0:
            raise ExternalToolError(f"The app bundler failed with exit code {returncode}",
                                    returncode=returncode)

    def copy_bundle_files(self, application: Application):
        """Copy the payload into Contents/Java and fix the permissions of the bundle."""
        destination = self.bundle_path(application)
        java_dir = destination / "Contents" / "Java"
        java_dir.mkdir(parents=True, exist_ok=True)
        for source in self.task.payload:
            src = self.setup.project.file(source)
            if not src.exists():
                if self.setup.fail_on_empty_from:
                    raise ConfigurationError(f"Payload source does not exist: {src}")
                print(f"  WARNING: payload source not found, skipping: {src}")
                continue
            if src.is_dir():
                shutil.copytree(src, java_dir, dirs_exist_ok=True)
            else:
                shutil.copy2(src, java_dir / src.name)
            print(f"  Payload: {source}")

        self.set_application_file_permissions(destination)

    def set_application_file_permissions(self, destination: Path):
        """Everything readable by all, every directory searchable by all."""
        destination = Path(destination).absolute()
        self.runner.check(["chmod", "-R", "a+r", destination])

        cmd = ["find", destination]
        if destination.is_dir():
            cmd += ["-type", "d"]
        cmd += ["-exec", "chmod", "a+x", "{}", ";"]
        self.runner.check(cmd)

    # ─── Driver ──────────────────────────────────────────────────────────────

    def build(self, application: Application, webstart: bool = None) -> Path:
        """Run all phases for one application and return the bundle path."""
        if webstart is None:
            webstart = self.task.webstart
        print(f"\n=== Building {application.display_name}.app ===")
        self.prepare_application(application, webstart)
        self.finish_application()
        self.copy_bundle_files(application)
        return self.bundle_path(application)

import plistlib

import pytest

from conftest import FakeRunner
from setupbuilder.appbundler import AppBundler
from setupbuilder.bundle import (JAVA_HOME, BundleAssembler, application_identifier,
                                 short_version, split_arguments)
from setupbuilder.errors import ConfigurationError, ExternalToolError
from setupbuilder.model import Application, DocumentType, EDITOR, SetupTask


class FailingBundler:
    def __init__(self):
        self.executed = []

    def execute(self, config):
        self.executed.append(config)
        return 2


@pytest.mark.parametrize("version, expected", [
    ("1.2.3.4", "1.2"),
    ("1.2", "1.2"),
    ("1", "1"),
    ("2.0.1", "2.0"),
    ("10.11.12-SNAPSHOT", "10.11"),
])
def test_short_version(version, expected):
    assert short_version(version) == expected


def test_split_arguments_drops_empty_tokens():
    assert split_arguments("  --port  8080 -v ") == ["--port", "8080", "-v"]
    assert split_arguments("") == []


def test_identifier_for_main_and_secondary_application(config):
    assert application_identifier(config, "Demo") == "com.example.demo"
    assert application_identifier(config, "Demo Tool (beta)!") == "com.example.demo.DemoToolbeta"


def test_prepare_main_application(config, task, application, runner):
    application.vm_arguments = ["-Xmx512m", "-Dfoo=bar"]
    application.start_arguments = " --port  8080 "
    application.document_types = [DocumentType(["dmo", "demo"], "Demo Document", EDITOR)]
    application.schemes = ["demo", ""]
    task.architectures = ["arm64"]
    task.native_libraries = ["lib/native"]

    assembler = BundleAssembler(task, config, runner=runner)
    assembler.prepare_application(application)
    bundle = assembler.bundle

    assert bundle.name == bundle.display_name == "Demo"
    assert bundle.version == "2.1.0"
    assert bundle.short_version == "2.1"
    assert bundle.identifier == "com.example.demo"
    assert bundle.main_class_name == "com.example.Main"
    assert bundle.jar_launcher_name == "demo.jar"
    assert bundle.options == ["-Xmx512m", "-Dfoo=bar"]
    assert bundle.arguments == ["--port", "8080"]
    assert bundle.ignore_psn is True
    assert bundle.icon == task.build_dir / "app.icns"
    assert len(bundle.documents) == 1
    assert bundle.documents[0].extensions == "dmo,demo"
    assert bundle.documents[0].role == "Editor"
    assert bundle.documents[0].icon == str(task.build_dir / "app.icns")
    assert bundle.schemes == ["demo"]
    assert bundle.architectures == ["arm64"]
    assert bundle.library_paths == ["lib/native"]
    assert runner.calls == []


def test_work_dir_patches_jar_and_working_directory(config, task, application):
    application.work_dir = "lib"
    assembler = BundleAssembler(task, config, runner=FakeRunner())
    assembler.prepare_application(application)
    assert assembler.bundle.jar_launcher_name == "lib/demo.jar"
    assert assembler.bundle.working_directory == "$APP_ROOT/Contents/Java/lib"


def test_missing_main_class_fails_before_any_process(config, task, runner):
    application = Application(display_name="Demo", main_jar="demo.jar")
    assembler = BundleAssembler(task, config, runner=runner)
    with pytest.raises(ConfigurationError, match="main class"):
        assembler.build(application)
    assert runner.calls == []


def test_missing_main_jar_fails(config, task, runner):
    application = Application(display_name="Demo", main_class="com.example.Main")
    with pytest.raises(ConfigurationError, match="main jar"):
        BundleAssembler(task, config, runner=runner).prepare_application(application)
    assert runner.calls == []


def test_webstart_skips_validation(config, task, runner):
    application = Application(display_name="Demo", start_arguments="--x")
    assembler = BundleAssembler(task, config, runner=runner)
    assembler.prepare_application(application, webstart=True)
    assert assembler.bundle.main_class_name is None
    assert assembler.bundle.arguments == []


def test_image_settings_only_for_image_task(config, project, application):
    tmp = project.root / "build" / "tmp" / "app"
    task = SetupTask(build_dir=tmp, temporary_dir=tmp)
    task.architectures = ["arm64"]
    assembler = BundleAssembler(task, config, runner=FakeRunner())
    assembler.prepare_application(application)
    assert assembler.bundle.architectures == []


def test_add_scheme_and_document_types_are_additive(config, task):
    assembler = BundleAssembler(task, config, runner=FakeRunner())
    assembler.add_scheme("one")
    assembler.add_scheme(None)
    assembler.add_scheme("two")
    assembler.set_document_types([DocumentType(["a"], "A")])
    assembler.set_document_types([DocumentType(["b", "c"], "B")])
    assert assembler.bundle.schemes == ["one", "two"]
    assert [d.extensions for d in assembler.bundle.documents] == ["a", "b,c"]


def test_bundle_jre_from_directory(config, task, project, runner):
    jdk = project.root / "jdk"
    (jdk / "bin").mkdir(parents=True)
    config.bundle_jre = "jdk"
    task.jre_excludes = ["lib/src.zip"]

    assembler = BundleAssembler(task, config, runner=runner)
    assembler.bundle_jre()

    runtime = assembler.bundle.runtime
    assert runtime.home == jdk
    assert runtime.target == "jre"
    assert runtime.includes == []
    assert runtime.excludes == ["lib/src.zip"]
    assert runner.calls == []


def test_bundle_jre_located_by_version(config, project, tmp_path):
    home = tmp_path / "jdk-11" / "Contents" / "Home"
    home.mkdir(parents=True)
    runner = FakeRunner({JAVA_HOME: (0, f"{home}\n")})
    build = project.root / "build" / "tmp" / "app"
    task = SetupTask(build_dir=build, temporary_dir=build)
    config.bundle_jre = "11"

    assembler = BundleAssembler(task, config, runner=runner)
    assembler.bundle_jre()

    assert runner.calls == [[JAVA_HOME, "-v", "11", "-F"]]
    assert assembler.bundle.runtime.home == home
    assert assembler.bundle.runtime.includes == ["jre/bin/java"]


def test_bundle_jre_not_found(config, task, tmp_path):
    runner = FakeRunner({JAVA_HOME: (0, str(tmp_path / "nowhere"))})
    config.bundle_jre = "1.6"
    with pytest.raises(ExternalToolError, match="bundleJre version 1.6 can not be found"):
        BundleAssembler(task, config, runner=runner).bundle_jre()


@pytest.mark.parametrize("output", ["", "\n", "   \n"])
def test_bundle_jre_empty_locator_output(config, task, output, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    runner = FakeRunner({JAVA_HOME: (0, output)})
    config.bundle_jre = "1.6"
    assembler = BundleAssembler(task, config, runner=runner)
    with pytest.raises(ExternalToolError, match=r"can not be found in: \(no output\)"):
        assembler.bundle_jre()
    assert assembler.bundle.runtime is None


def test_bundle_jre_locator_failure(config, task):
    runner = FakeRunner({JAVA_HOME: (1, "Unable to find any JVMs")})
    config.bundle_jre = "99"
    with pytest.raises(ExternalToolError) as exc:
        BundleAssembler(task, config, runner=runner).bundle_jre()
    assert exc.value.returncode == 1


def test_bundler_failure_is_fatal(config, task, application, runner):
    bundler = FailingBundler()
    assembler = BundleAssembler(task, config, runner=runner, bundler=bundler)
    with pytest.raises(ExternalToolError):
        assembler.build(application)
    assert len(bundler.executed) == 1
    assert runner.calls == []


def test_permissions_file_pass_then_directory_pass(config, task, tmp_path, runner):
    target = tmp_path / "Demo.app"
    target.mkdir()
    BundleAssembler(task, config, runner=runner).set_application_file_permissions(target)
    assert runner.calls == [
        ["chmod", "-R", "a+r", str(target)],
        ["find", str(target), "-type", "d", "-exec", "chmod", "a+x", "{}", ";"],
    ]


def test_missing_payload(config, task, application, runner):
    task.payload = ["build/missing"]
    assembler = BundleAssembler(task, config, runner=runner)
    with pytest.raises(ConfigurationError, match="missing"):
        assembler.copy_bundle_files(application)

    config.fail_on_empty_from = False
    assembler.copy_bundle_files(application)
    assert runner.tools() == ["chmod", "find"]


def test_build_writes_bundle(config, task, application, project, runner):
    jdk = project.root / "jdk"
    (jdk / "bin").mkdir(parents=True)
    (jdk / "bin" / "java").write_text("java")
    (jdk / "lib").mkdir()
    (jdk / "lib" / "src.zip").write_text("src")
    config.bundle_jre = "jdk"
    task.jre_excludes = ["lib/src.zip"]
    application.schemes = ["demo"]

    bundle = BundleAssembler(task, config, runner=runner, bundler=AppBundler()).build(application)

    assert bundle == task.build_dir / "Demo.app"
    contents = bundle / "Contents"
    with (contents / "Info.plist").open("rb") as fp:
        info = plistlib.load(fp)
    assert info["CFBundleIdentifier"] == "com.example.demo"
    assert info["CFBundleShortVersionString"] == "2.1"
    assert info["CFBundleVersion"] == "2.1.0"
    assert info["CFBundleIconFile"] == "app.icns"
    assert info["JVMMainClassName"] == "com.example.Main"
    assert info["JVMRuntime"] == "jre"
    assert info["CFBundleURLTypes"][0]["CFBundleURLSchemes"] == ["demo"]

    assert (contents / "MacOS" / "Demo").exists()
    assert (contents / "Resources" / "app.icns").read_bytes() == b"icns"
    assert (contents / "Java" / "demo.jar").read_bytes() == b"PK"
    assert (contents / "PlugIns" / "jre" / "bin" / "java").exists()
    assert not (contents / "PlugIns" / "jre" / "lib" / "src.zip").exists()

    assert runner.tools() == ["chmod", "find"]

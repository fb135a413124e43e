"""Code signing of bundles with codesign."""

from pathlib import Path

from .model import CodeSign
from .process import ProcessRunner


class CodeSigner:
    """Signs a bundle with the configured identity, then verifies the signature."""

    def __init__(self, settings: CodeSign, runner: ProcessRunner = None):
        self.settings = settings
        self.runner = runner or ProcessRunner()

    @property
    def is_adhoc(self) -> bool:
        return self.settings.identity == "-"

    def sign_command(self, bundle: Path) -> list:
        cmd = ["codesign", "--force", "--deep", "--sign", self.settings.identity]
        if not self.is_adhoc:
            cmd += ["--options", "runtime", "--timestamp"]
        if self.settings.keychain:
            cmd += ["--keychain", self.settings.keychain]
        if self.settings.entitlements:
            cmd += ["--entitlements", self.settings.entitlements]
        cmd.append(str(bundle))
        return cmd

    def sign(self, bundle: Path):
        bundle = Path(bundle)
        print(f"  Signing {bundle.name} ({'ad-hoc' if self.is_adhoc else self.settings.identity})...")
        self.runner.check(self.sign_command(bundle))
        self.runner.check(["codesign", "--verify", "--strict", "--deep", "--verbose=2", str(bundle)])

"""Errors raised by the setup pipelines. All of them abort the current pipeline."""


class SetupBuilderError(Exception):
    pass


class ConfigurationError(SetupBuilderError):
    """The configuration is insufficient or invalid."""


class ExternalToolError(SetupBuilderError):
    """An external process exited with a non-zero status."""

    def __init__(self, message: str, cmd=None, returncode: int = None, output: str = ""):
        super().__init__(message)
        self.cmd = cmd
        self.returncode = returncode
        self.output = output


class MissingArtifactError(SetupBuilderError):
    """A nested build did not produce the expected artifact."""

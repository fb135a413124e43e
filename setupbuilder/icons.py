"""
Icon configuration.

The icons setting can be a single file, a list of files, or a mapping from
format to file. The pipelines never look at the variant, they only ask for a
file of a given format through IconSpec.resolve().
"""

from pathlib import Path

from .errors import ConfigurationError

SINGLE = "single"
LIST = "list"
PLATFORM = "platform"


class IconSpec:
    """Tagged icon configuration. Paths are relative to the project root."""

    def __init__(self, kind: str, files, root: Path = None):
        if kind not in (SINGLE, LIST, PLATFORM):
            raise ConfigurationError(f"Unknown icon kind: {kind}")
        self.kind = kind
        self.files = files
        self.root = root or Path(".")

    @classmethod
    def from_config(cls, value, root: Path = None):
        """Build a spec from the raw `icons` value of setup.yaml. None stays None."""
        if value is None:
            return None
        if isinstance(value, str):
            return cls(SINGLE, value, root)
        if isinstance(value, (list, tuple)):
            return cls(LIST, [str(v) for v in value], root)
        if isinstance(value, dict):
            return cls(PLATFORM, {str(k).lower().lstrip("."): str(v) for k, v in value.items()}, root)
        raise ConfigurationError(f"Unsupported icons setting: {value!r}")

    def candidates(self) -> list:
        if self.kind == SINGLE:
            return [self.files]
        if self.kind == LIST:
            return list(self.files)
        return list(self.files.values())

    def resolve(self, fmt: str) -> Path:
        """Return an existing icon file in the requested format."""
        fmt = fmt.lower().lstrip(".")
        if self.kind == PLATFORM:
            names = [self.files[fmt]] if fmt in self.files else []
        else:
            names = [n for n in self.candidates() if Path(n).suffix.lower() == "." + fmt]

        for name in names:
            path = Path(name)
            if not path.is_absolute():
                path = self.root / path
            if path.is_file():
                return path
        raise ConfigurationError(
            f"You have to specify a valid icon file.\n\n"
            f"\tPlease set the parameter 'icons' of the setupBuilder configuration "
            f"to an existing '*.{fmt}' file.\n")

    def __repr__(self):
        return f"IconSpec({self.kind}, {self.files!r})"

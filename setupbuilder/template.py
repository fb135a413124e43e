"""
Template materialization.

A template is a file tree shipped as package data. Materializing it runs two
passes over the declared file manifest: a rename pass on the entry paths,
then a streaming byte substitution pass on the file contents. Both use the
same substitution table, supplied by the caller.
"""

import re
from importlib import resources
from pathlib import Path

CHUNK_SIZE = 64 * 1024


class TemplateStore:
    """Files below a root that is a Path or an importlib.resources Traversable."""

    def __init__(self, root, chunk_size=CHUNK_SIZE):
        self.root = root
        self.chunk_size = chunk_size

    @classmethod
    def from_package(cls, package: str, path: str, chunk_size=CHUNK_SIZE):
        root = resources.files(package)
        for part in path.strip("/").split("/"):
            root = root.joinpath(part)
        return cls(root, chunk_size)

    def manifest(self) -> list:
        """Relative posix paths of every file in the template, sorted."""
        names = []

        def walk(node, prefix):
            for child in node.iterdir():
                name = f"{prefix}{child.name}"
                if child.is_dir():
                    if child.name != "__pycache__":
                        walk(child, name + "/")
                else:
                    names.append(name)

        walk(self.root, "")
        return sorted(names)

    def read(self, name: str):
        """Yield the content of one entry in chunks."""
        node = self.root
        for part in name.split("/"):
            node = node.joinpath(part)
        with node.open("rb") as fp:
            while True:
                chunk = fp.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk

    def entries(self):
        """(name, chunks) pairs for every file in the template."""
        for name in self.manifest():
            yield name, self.read(name)


def _pattern(table: dict):
    keys = sorted(table, key=len, reverse=True)
    return re.compile(b"|".join(re.escape(k) for k in keys))


def substitute(chunks, table: dict):
    """Replace every key of table by its value in a stream of byte chunks."""
    if not table:
        yield from chunks
        return
    pattern = _pattern(table)
    keep = max(len(k) for k in table) - 1
    buffer = b""
    for chunk in chunks:
        buffer += chunk
        limit = len(buffer) - keep
        out = []
        pos = 0
        for m in pattern.finditer(buffer):
            if m.start() >= limit:
                break
            out.append(buffer[pos:m.start()])
            out.append(table[m.group()])
            pos = m.end()
        upto = max(pos, limit)
        out.append(buffer[pos:upto])
        buffer = buffer[upto:]
        data = b"".join(out)
        if data:
            yield data
    if buffer:
        yield pattern.sub(lambda m: table[m.group()], buffer)


def rename(name: str, table: dict) -> str:
    for old, new in table.items():
        name = name.replace(old.decode("utf-8"), new.decode("utf-8"))
    return name


def materialize(store: TemplateStore, output_dir: Path, table: dict) -> list:
    """Write the template into output_dir with names and contents substituted."""
    output_dir = Path(output_dir)
    manifest = store.manifest()
    renamed = [(name, rename(name, table)) for name in manifest]

    written = []
    for name, target in renamed:
        dst = output_dir / target
        dst.parent.mkdir(parents=True, exist_ok=True)
        with dst.open("wb") as fp:
            for data in substitute(store.read(name), table):
                fp.write(data)
        written.append(dst)
    return written

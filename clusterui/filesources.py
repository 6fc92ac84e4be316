"""File-source contracts for HDFS-backed tree nodes plus an in-memory demo."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Mapping, Protocol, Sequence, Union, runtime_checkable


class FileSourceError(RuntimeError):
    """Raised when a file source cannot list or read a path."""


@dataclass(frozen=True, slots=True)
class HdfsAuth:
    """Basic-auth credentials forwarded to the gateway."""

    user: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class HdfsOptions:
    """Everything a factory needs to reach WebHDFS through the Knox gateway."""

    protocol: str
    host: str
    port: str
    user: str
    path: str
    auth: HdfsAuth

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}/{self.path}"


@dataclass(frozen=True, slots=True)
class FileEntry:
    """Single directory listing entry."""

    name: str
    is_directory: bool
    size: int = 0


@runtime_checkable
class FileSource(Protocol):
    """Directory listing and read operations over a remote file system."""

    async def enumerate(self, path: str) -> Sequence[FileEntry]:
        """Return the entries directly under ``path``."""

    async def read(self, path: str, max_bytes: int | None = None) -> bytes:
        """Return the contents of ``path``, truncated to ``max_bytes``."""


@runtime_checkable
class FileSourceFactory(Protocol):
    """Builds a file source for a cluster's HDFS options."""

    def create_hdfs_file_source(self, options: HdfsOptions) -> FileSource:
        """Return a file source bound to ``options``."""


DemoTree = Mapping[str, Union["DemoTree", bytes]]

DEMO_HDFS_TREE: DemoTree = {
    "apps": {
        "spark": {
            "wordcount.py": b"from pyspark.sql import SparkSession\n",
            "etl-assembly.jar": b"PK\x03\x04",
        },
    },
    "tmp": {},
    "user": {
        "root": {
            "flights.csv": b"carrier,origin,dest\nAA,JFK,LAX\n",
            "README.md": b"# scratch space\n",
        },
    },
}


class DemoFileSource:
    """File source backed by a nested mapping of folders and file bytes."""

    def __init__(self, tree: DemoTree | None = None, *, options: HdfsOptions | None = None) -> None:
        self._tree = tree if tree is not None else DEMO_HDFS_TREE
        self.options = options

    async def enumerate(self, path: str) -> Sequence[FileEntry]:
        folder = self._resolve(path)
        if not isinstance(folder, Mapping):
            raise FileSourceError(f"Not a directory: {path}")
        entries: list[FileEntry] = []
        for name, value in folder.items():
            if isinstance(value, Mapping):
                entries.append(FileEntry(name=name, is_directory=True))
            else:
                entries.append(FileEntry(name=name, is_directory=False, size=len(value)))
        return entries

    async def read(self, path: str, max_bytes: int | None = None) -> bytes:
        content = self._resolve(path)
        if isinstance(content, Mapping):
            raise FileSourceError(f"Cannot read a directory: {path}")
        if max_bytes is not None:
            return content[:max_bytes]
        return content

    def _resolve(self, path: str) -> DemoTree | bytes:
        node: DemoTree | bytes = self._tree
        for part in posixpath.normpath(path).split("/"):
            if not part or part == ".":
                continue
            if not isinstance(node, Mapping) or part not in node:
                raise FileSourceError(f"Path does not exist: {path}")
            node = node[part]
        return node


class DemoFileSourceFactory:
    """Factory handing every cluster the same in-memory tree."""

    def __init__(self, tree: DemoTree | None = None) -> None:
        self._tree = tree
        self.created: list[HdfsOptions] = []

    def create_hdfs_file_source(self, options: HdfsOptions) -> FileSource:
        self.created.append(options)
        return DemoFileSource(self._tree, options=options)


__all__ = [
    "DEMO_HDFS_TREE",
    "DemoFileSource",
    "DemoFileSourceFactory",
    "FileEntry",
    "FileSource",
    "FileSourceError",
    "FileSourceFactory",
    "HdfsAuth",
    "HdfsOptions",
]

"""Lazily populated tree nodes backing the Object Explorer."""

from __future__ import annotations

import posixpath
import uuid
import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from .constants import (
    HDFS_ROOT_PATH,
    MESSAGE_PATH_SEGMENT,
    NODE_PATH_SEPARATOR,
    SPARK_FILE_SUFFIXES,
    NodeSubType,
    NodeType,
)
from .filesources import FileSource


def get_error_message(error: BaseException) -> str:
    """Human readable text for an exception."""

    message = str(error).strip()
    return message or error.__class__.__name__


@dataclass(frozen=True, slots=True)
class NodeInfo:
    """Wire-facing projection of a tree node."""

    label: str
    node_path: str
    is_leaf: bool
    node_type: str
    node_sub_type: str | None = None
    icon_type: str | None = None
    error_message: str | None = None


class TreeChangeHandler(Protocol):
    """Receives notifications when a node's children changed."""

    def notify_node_changed(self, node: TreeNode) -> None: ...


NodeHook = Callable[["TreeNode"], None]


@dataclass(slots=True)
class TreeDataContext:
    """Shared state handed to every node of one session's tree."""

    change_handler: TreeChangeHandler | None = None
    on_attach: NodeHook | None = None
    on_detach: NodeHook | None = None


class TreeNode(ABC):
    """Base node: owns its children cache, references its parent weakly."""

    def __init__(self, context: TreeDataContext) -> None:
        self.context = context
        self.node_id = uuid.uuid4().hex
        self._parent: weakref.ReferenceType[TreeNode] | None = None
        self._children: tuple[TreeNode, ...] | None = None

    @property
    def parent(self) -> TreeNode | None:
        if self._parent is None:
            return None
        return self._parent()

    @property
    @abstractmethod
    def path_segment(self) -> str:
        """This node's own component of the node path."""

    @property
    def path_segments(self) -> tuple[str, ...]:
        parent = self.parent
        prefix = parent.path_segments if parent is not None else ()
        return prefix + (self.path_segment,)

    @property
    def node_path(self) -> str:
        return NODE_PATH_SEPARATOR.join(self.path_segments)

    def attach(self, child: TreeNode) -> TreeNode:
        """Adopt ``child``; a node can only ever be attached once."""

        if child._parent is not None:
            raise RuntimeError(f"Node '{child.path_segment}' is already attached")
        child._parent = weakref.ref(self)
        if self.context.on_attach is not None:
            self.context.on_attach(child)
        return child

    async def get_children(self, force_refresh: bool = False) -> Sequence[TreeNode]:
        if force_refresh or self._children is None:
            loaded = await self._load_children()
            # Read after the await: an overlapping load may have replaced the cache meanwhile.
            previous = self._children
            children = tuple(self.attach(child) for child in loaded)
            self._children = children
            if previous:
                self._release(previous)
        return self._children

    @abstractmethod
    async def _load_children(self) -> Sequence[TreeNode]:
        """Build fresh, unattached child nodes."""

    @abstractmethod
    def get_node_info(self) -> NodeInfo:
        """Project the node for the host UI."""

    async def find_by_path(self, path: Sequence[str], force_refresh: bool = False) -> TreeNode | None:
        """Walk down the tree following ``path``; ``None`` when it does not exist."""

        target = tuple(path)
        own = self.path_segments
        if target == own:
            return self
        if len(target) <= len(own) or target[: len(own)] != own:
            return None
        wanted = target[len(own)]
        for child in await self.get_children(force_refresh):
            if child.path_segment == wanted:
                return await child.find_by_path(target, force_refresh)
        return None

    def notify_changed(self) -> None:
        handler = self.context.change_handler
        if handler is not None:
            handler.notify_node_changed(self)

    def _release(self, nodes: Sequence[TreeNode]) -> None:
        for node in nodes:
            if node._children:
                node._release(node._children)
            if self.context.on_detach is not None:
                self.context.on_detach(node)


class MessageNode(TreeNode):
    """Leaf carrying an informational or error message."""

    def __init__(self, context: TreeDataContext, message: str) -> None:
        super().__init__(context)
        self.message = message

    @property
    def path_segment(self) -> str:
        return MESSAGE_PATH_SEGMENT

    async def _load_children(self) -> Sequence[TreeNode]:
        return ()

    def get_node_info(self) -> NodeInfo:
        return NodeInfo(
            label=self.message,
            node_path=self.node_path,
            is_leaf=True,
            node_type=NodeType.MESSAGE.value,
            icon_type="Message",
        )


class HdfsNode(TreeNode):
    """Node mapped onto a path of an HDFS file source."""

    def __init__(self, context: TreeDataContext, name: str, file_source: FileSource) -> None:
        super().__init__(context)
        self.name = name
        self.file_source = file_source

    @property
    def path_segment(self) -> str:
        return self.name

    @property
    def hdfs_path(self) -> str:
        parent = self.parent
        if isinstance(parent, HdfsNode):
            return posixpath.join(parent.hdfs_path, self.name)
        return HDFS_ROOT_PATH


class FolderNode(HdfsNode):
    """HDFS directory; lists its entries on first expansion."""

    node_type = NodeType.FOLDER

    def __init__(self, context: TreeDataContext, name: str, file_source: FileSource) -> None:
        super().__init__(context, name, file_source)
        self.error_message: str | None = None

    async def _load_children(self) -> Sequence[TreeNode]:
        try:
            entries = await self.file_source.enumerate(self.hdfs_path)
        except Exception as exc:
            self.error_message = get_error_message(exc)
            return (MessageNode(self.context, self.error_message),)
        self.error_message = None
        ordered = sorted(entries, key=lambda entry: (not entry.is_directory, entry.name))
        return tuple(
            FolderNode(self.context, entry.name, self.file_source)
            if entry.is_directory
            else FileNode(self.context, entry.name, self.file_source, size=entry.size)
            for entry in ordered
        )

    def invalidate(self) -> None:
        """Drop the cached listing and let the host know."""

        if self._children:
            self._release(self._children)
        self._children = None
        self.notify_changed()

    def get_node_info(self) -> NodeInfo:
        return NodeInfo(
            label=self.name,
            node_path=self.node_path,
            is_leaf=False,
            node_type=self.node_type.value,
            icon_type="Folder",
            error_message=self.error_message,
        )


class HdfsConnectionNode(FolderNode):
    """Top HDFS container, rooted at ``/`` of the cluster's file system."""

    node_type = NodeType.CONNECTION

    def get_node_info(self) -> NodeInfo:
        return NodeInfo(
            label=self.name,
            node_path=self.node_path,
            is_leaf=False,
            node_type=self.node_type.value,
            node_sub_type=NodeSubType.SPARK.value,
            icon_type="Folder",
            error_message=self.error_message,
        )


class FileNode(HdfsNode):
    """HDFS file leaf."""

    def __init__(self, context: TreeDataContext, name: str, file_source: FileSource, *, size: int = 0) -> None:
        super().__init__(context, name, file_source)
        self.size = size

    @property
    def is_spark_job(self) -> bool:
        return self.name.lower().endswith(SPARK_FILE_SUFFIXES)

    async def _load_children(self) -> Sequence[TreeNode]:
        return ()

    async def read(self, max_bytes: int | None = None) -> bytes:
        return await self.file_source.read(self.hdfs_path, max_bytes)

    def get_node_info(self) -> NodeInfo:
        return NodeInfo(
            label=self.name,
            node_path=self.node_path,
            is_leaf=True,
            node_type=NodeType.FILE.value,
            node_sub_type=NodeSubType.SPARK.value if self.is_spark_job else None,
            icon_type="File",
        )


__all__ = [
    "FileNode",
    "FolderNode",
    "HdfsConnectionNode",
    "HdfsNode",
    "MessageNode",
    "NodeInfo",
    "TreeChangeHandler",
    "TreeDataContext",
    "TreeNode",
    "get_error_message",
]

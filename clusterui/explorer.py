"""Object Explorer provider: per-connection sessions and on-demand expansion.

Every request is answered in two phases. The synchronous call returns a
ticket straight away; the real work runs in a task on the running event loop
and resolves the ticket's ``completion`` future exactly once, emitting the
matching event to subscribers at the same time. Because the task cannot start
before the caller yields back to the loop, no event is ever observed before
the caller has its ticket in hand.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Coroutine, Sequence

from .config import AppConfig
from .connection import ConnectionDescriptor, ConnectionSource, normalize
from .constants import HDFS_LABEL, HDFS_ROOT_PATH, NODE_PATH_SEPARATOR, NodeType
from .filesources import FileSource, FileSourceFactory
from .tree import HdfsConnectionNode, NodeInfo, TreeDataContext, TreeNode, get_error_message

LOG = logging.getLogger(__name__)

SessionListener = Callable[["SessionResult"], None]
ExpandListener = Callable[["ExpandResult"], None]
ErrorReporter = Callable[[str], None]


class SessionState(str, Enum):
    """Lifecycle of a session key inside the provider."""

    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Outcome of a session creation request."""

    session_id: str
    success: bool
    root_node: NodeInfo | None = None
    error_message: str | None = None


@dataclass(frozen=True, slots=True)
class ExpandNodeInfo:
    """Host request to expand the node at ``node_path``."""

    session_id: str
    node_path: str


@dataclass(frozen=True, slots=True)
class ExpandResult:
    """Children of an expanded node, or the reason expansion failed."""

    session_id: str
    node_path: str
    nodes: tuple[NodeInfo, ...] = ()
    error_message: str | None = None


@dataclass(frozen=True, slots=True)
class CloseSessionInfo:
    session_id: str


@dataclass(frozen=True, slots=True)
class CloseSessionResult:
    success: bool
    session_id: str


@dataclass(frozen=True, slots=True)
class FindNodesInfo:
    session_id: str
    type: str | None = None
    name: str | None = None
    schema: str | None = None
    database: str | None = None
    parent_object_names: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FindNodesResult:
    nodes: tuple[NodeInfo, ...] = ()


@dataclass(frozen=True, slots=True)
class ObjectExplorerContext:
    """Host context menu target: a connection plus an optional node."""

    connection: ConnectionDescriptor | ConnectionSource
    is_connection_node: bool = False
    node_info: NodeInfo | None = None


@dataclass(frozen=True, slots=True)
class SessionTicket:
    """Synchronous answer to ``create_session``."""

    session_id: str
    completion: asyncio.Future[SessionResult] = field(repr=False, compare=False)

    async def wait(self) -> SessionResult:
        return await self.completion


@dataclass(frozen=True, slots=True)
class ExpandTicket:
    """Synchronous answer to ``expand_node``; ``accepted`` mirrors the boolean reply."""

    accepted: bool
    session_id: str | None
    node_path: str | None
    completion: asyncio.Future[ExpandResult] = field(repr=False, compare=False)

    def __bool__(self) -> bool:
        return self.accepted

    async def wait(self) -> ExpandResult:
        return await self.completion


class Session:
    """Binds a validated cluster connection to its tree root."""

    def __init__(self, connection: ConnectionDescriptor) -> None:
        self._connection = connection
        self._root: RootNode | None = None
        self.state = SessionState.PENDING
        self.file_source: FileSource | None = None
        self.result: asyncio.Future[SessionResult] | None = None

    @property
    def session_id(self) -> str:
        return self._connection.uri

    @property
    def connection(self) -> ConnectionDescriptor:
        return self._connection

    @property
    def root(self) -> RootNode | None:
        return self._root

    @root.setter
    def root(self, node: RootNode) -> None:
        if self._root is not None:
            raise RuntimeError(f"Session '{self.session_id}' already has a root node")
        self._root = node


class RootNode(TreeNode):
    """Per-session root holding the single HDFS container."""

    def __init__(self, session: Session, context: TreeDataContext) -> None:
        super().__init__(context)
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    @property
    def path_segment(self) -> str:
        return self._session.session_id

    async def _load_children(self) -> Sequence[TreeNode]:
        file_source = self._session.file_source
        if file_source is None:
            raise RuntimeError(f"Session '{self._session.session_id}' has no file source")
        return (HdfsConnectionNode(self.context, HDFS_LABEL, file_source),)

    def get_node_info(self) -> NodeInfo:
        return NodeInfo(
            label=self._session.connection.host,
            node_path=self.node_path,
            is_leaf=False,
            node_type=NodeType.ROOT.value,
            icon_type="root",
        )


def split_node_path(node_path: str, session_id: str) -> tuple[str, ...]:
    """Turn a wire node path back into segments under ``session_id``.

    The session id is itself a URI, so it is peeled off as one segment rather
    than split on the separator.
    """

    if node_path == session_id:
        return (session_id,)
    prefix = session_id + NODE_PATH_SEPARATOR
    if node_path.startswith(prefix):
        rest = node_path[len(prefix):]
        return (session_id, *rest.split(NODE_PATH_SEPARATOR))
    return (node_path,)


class ObjectExplorerProvider:
    """Owns the session registry and drives node expansion for the host UI."""

    def __init__(
        self,
        file_source_factory: FileSourceFactory,
        *,
        config: AppConfig | None = None,
        show_error: ErrorReporter | None = None,
    ) -> None:
        if file_source_factory is None:
            raise ValueError("A file source factory is required")
        self._factory = file_source_factory
        self._config = config or AppConfig()
        self._show_error = show_error or _log_error
        self._sessions: dict[str, Session] = {}
        self._node_owners: dict[str, str] = {}
        self._session_listeners: set[SessionListener] = set()
        self._expand_listeners: set[ExpandListener] = set()
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def sessions(self) -> tuple[Session, ...]:
        """Registered sessions in insertion order."""

        return tuple(self._sessions.values())

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def subscribe_session_created(self, listener: SessionListener) -> Callable[[], None]:
        self._session_listeners.add(listener)

        def _unsubscribe() -> None:
            self._session_listeners.discard(listener)

        return _unsubscribe

    def subscribe_expand_completed(self, listener: ExpandListener) -> Callable[[], None]:
        self._expand_listeners.add(listener)

        def _unsubscribe() -> None:
            self._expand_listeners.discard(listener)

        return _unsubscribe

    def create_session(self, source: ConnectionSource) -> SessionTicket:
        """Accept a session request; construction finishes asynchronously.

        Raises :class:`~clusterui.connection.InvalidConnectionError` straight
        away when the connection is incomplete.
        """

        descriptor = normalize(source)
        loop = asyncio.get_running_loop()
        completion: asyncio.Future[SessionResult] = loop.create_future()
        ticket = SessionTicket(session_id=descriptor.uri, completion=completion)
        existing = self._sessions.get(descriptor.uri)
        if existing is not None and existing.result is not None:
            LOG.debug("Session already registered", extra={"session_id": descriptor.uri})
            self._spawn(self._follow(existing.result, completion))
            return ticket

        session = Session(descriptor)
        session.result = completion
        self._sessions[session.session_id] = session
        self._spawn(self._create_session(session, completion))
        return ticket

    def expand_node(self, node_info: ExpandNodeInfo | None, *, refresh: bool = False) -> ExpandTicket:
        loop = asyncio.get_running_loop()
        completion: asyncio.Future[ExpandResult] = loop.create_future()
        if node_info is None:
            ticket = ExpandTicket(False, None, None, completion)
            self._defer_expand_result(
                completion,
                ExpandResult(
                    session_id="",
                    node_path="",
                    error_message="expandNode requires a nodeInfo object to be passed",
                ),
            )
            return ticket

        ticket = ExpandTicket(False, node_info.session_id, node_info.node_path, completion)
        session = self._sessions.get(node_info.session_id)
        if session is None or session.state is not SessionState.ACTIVE:
            self._defer_expand_result(
                completion,
                ExpandResult(
                    session_id=node_info.session_id,
                    node_path=node_info.node_path,
                    error_message=(
                        "Cannot expand object explorer node. "
                        f"Couldn't find session for uri {node_info.session_id}"
                    ),
                ),
            )
            return ticket

        self._spawn(self._start_expansion(session, node_info, refresh, completion))
        return ExpandTicket(True, node_info.session_id, node_info.node_path, completion)

    def refresh_node(self, node_info: ExpandNodeInfo | None) -> ExpandTicket:
        """Expand with the node's children cache rebuilt."""

        return self.expand_node(node_info, refresh=True)

    def close_session(self, info: CloseSessionInfo) -> CloseSessionResult:
        session = self._sessions.pop(info.session_id, None)
        if session is not None:
            session.state = SessionState.CLOSED
            self._forget_nodes(info.session_id)
            LOG.info("Closed session", extra={"session_id": info.session_id})
        return CloseSessionResult(success=session is not None, session_id=info.session_id)

    def find_nodes(self, info: FindNodesInfo) -> FindNodesResult:
        """Node search is not supported; always answers with no nodes."""

        return FindNodesResult(nodes=())

    def notify_node_changed(self, node: TreeNode) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            LOG.debug("No running loop to deliver node change", extra={"node_path": node.node_path})
            return
        self._spawn(self._notify_node_changes(node))

    async def find_node_for_context(self, context: ObjectExplorerContext) -> TreeNode | None:
        session = self._find_session_for_connection(context.connection)
        if session is None or session.root is None:
            return None
        if context.is_connection_node:
            return session.root
        if context.node_info is None:
            return None
        path = split_node_path(context.node_info.node_path, session.session_id)
        return await session.root.find_by_path(path)

    def session_for_node(self, node: TreeNode) -> Session | None:
        key = self._node_owners.get(node.node_id)
        if key is None:
            return None
        return self._sessions.get(key)

    async def _create_session(self, session: Session, completion: asyncio.Future[SessionResult]) -> None:
        session_id = session.session_id
        try:
            session.file_source = self._factory.create_hdfs_file_source(session.connection.hdfs_options())
            if self._config.verify_on_connect:
                await session.file_source.enumerate(HDFS_ROOT_PATH)
            session.root = RootNode(session, self._context_for(session_id))
            self._track(session.root, session_id)
        except Exception as exc:
            LOG.warning(
                "Session creation failed",
                extra={"session_id": session_id, "error": get_error_message(exc)},
            )
            self._handle_session_failed(session, get_error_message(exc), completion)
            return

        if self._sessions.get(session_id) is not session:
            self._handle_session_failed(session, "Session was closed before it finished connecting", completion)
            return
        session.state = SessionState.ACTIVE
        LOG.info("Session created", extra={"session_id": session_id, "host": session.connection.host})
        result = SessionResult(
            session_id=session_id,
            success=True,
            root_node=session.root.get_node_info(),
        )
        completion.set_result(result)
        self._emit_session_created(result)

    def _handle_session_failed(
        self,
        session: Session,
        message: str,
        completion: asyncio.Future[SessionResult],
    ) -> None:
        owner = self._sessions.get(session.session_id)
        if owner is session:
            del self._sessions[session.session_id]
            self._forget_nodes(session.session_id)
        elif session.root is not None:
            self._untrack(session.root)
        session.state = SessionState.CLOSED
        result = SessionResult(session_id=session.session_id, success=False, error_message=message)
        completion.set_result(result)
        if owner is not None and owner is not session:
            # A newer session owns the key; its own event describes it.
            LOG.debug("Superseded session failed", extra={"session_id": session.session_id})
            return
        self._emit_session_created(result)

    async def _start_expansion(
        self,
        session: Session,
        node_info: ExpandNodeInfo,
        refresh: bool,
        completion: asyncio.Future[ExpandResult],
    ) -> None:
        nodes: tuple[NodeInfo, ...] = ()
        error_message: str | None = None
        try:
            if session.root is None:
                raise RuntimeError(f"Session '{session.session_id}' has no root node")
            path = split_node_path(node_info.node_path, session.session_id)
            node = await session.root.find_by_path(path)
            if node is None:
                error_message = (
                    "Cannot expand object explorer node. "
                    f"Couldn't find node for path {node_info.node_path}"
                )
            else:
                children = await node.get_children(force_refresh=refresh)
                nodes = tuple(child.get_node_info() for child in children)
                error_message = node.get_node_info().error_message
        except Exception as exc:
            LOG.warning(
                "Node expansion failed",
                extra={"session_id": session.session_id, "node_path": node_info.node_path},
            )
            error_message = get_error_message(exc)
        result = ExpandResult(
            session_id=session.session_id,
            node_path=node_info.node_path,
            nodes=nodes,
            error_message=error_message,
        )
        completion.set_result(result)
        self._emit_expand_completed(result)

    def _defer_expand_result(self, completion: asyncio.Future[ExpandResult], result: ExpandResult) -> None:
        async def _complete() -> None:
            completion.set_result(result)
            self._emit_expand_completed(result)

        self._spawn(_complete())

    async def _notify_node_changes(self, node: TreeNode) -> None:
        try:
            session = self.session_for_node(node)
            if session is None:
                self._show_error(f"Session for node {node.node_path} does not exist")
                return
            ticket = self.refresh_node(ExpandNodeInfo(session_id=session.session_id, node_path=node.node_path))
            await ticket.wait()
        except Exception:
            LOG.debug("Error notifying of node change", exc_info=True, extra={"node_path": node.node_path})

    @staticmethod
    async def _follow(source: asyncio.Future[SessionResult], target: asyncio.Future[SessionResult]) -> None:
        target.set_result(await asyncio.shield(source))

    def _find_session_for_connection(
        self,
        connection: ConnectionDescriptor | ConnectionSource,
    ) -> Session | None:
        # First registered match wins, even if a later session is a closer fit.
        for session in self._sessions.values():
            if session.connection.matches(connection):
                return session
        return None

    def _context_for(self, session_id: str) -> TreeDataContext:
        return TreeDataContext(
            change_handler=self,
            on_attach=lambda node: self._track(node, session_id),
            on_detach=self._untrack,
        )

    def _track(self, node: TreeNode, session_id: str) -> None:
        self._node_owners[node.node_id] = session_id

    def _untrack(self, node: TreeNode) -> None:
        self._node_owners.pop(node.node_id, None)

    def _forget_nodes(self, session_id: str) -> None:
        stale = [node_id for node_id, owner in self._node_owners.items() if owner == session_id]
        for node_id in stale:
            del self._node_owners[node_id]

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _emit_session_created(self, result: SessionResult) -> None:
        for listener in tuple(self._session_listeners):
            try:
                listener(result)
            except Exception:
                LOG.exception("Session listener failed", extra={"session_id": result.session_id})

    def _emit_expand_completed(self, result: ExpandResult) -> None:
        for listener in tuple(self._expand_listeners):
            try:
                listener(result)
            except Exception:
                LOG.exception(
                    "Expand listener failed",
                    extra={"session_id": result.session_id, "node_path": result.node_path},
                )


def _log_error(message: str) -> None:
    LOG.error(message)


__all__ = [
    "CloseSessionInfo",
    "CloseSessionResult",
    "ExpandNodeInfo",
    "ExpandResult",
    "ExpandTicket",
    "FindNodesInfo",
    "FindNodesResult",
    "ObjectExplorerContext",
    "ObjectExplorerProvider",
    "RootNode",
    "Session",
    "SessionResult",
    "SessionState",
    "SessionTicket",
    "split_node_path",
]

"""
Storage contract shared by every backend.

A backend pairs a :class:`FileStore` (the node tree) with a
:class:`UserStore` (accounts). Both are plain objects built once at startup
and given an explicit ``init``/``close`` lifecycle.
"""
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional

from models.schemas import FOLDER_MIME_TYPE, Node, NodeCreate, NodeUpdate, SearchFilter, UserInDB
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

NodeLookup = Callable[[int], Awaitable[Optional[Node]]]
ChildrenLookup = Callable[[int], Awaitable[List[Node]]]


async def post_order(root: Node, children_of: ChildrenLookup) -> List[Node]:
    """
    Returns the subtree under ``root`` with every child before its parent.

    Uses an explicit stack; a node reached twice (a cycle in parent links)
    is visited only once.
    """
    ordered: List[Node] = []
    seen = {root.id}
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded or not node.is_folder:
            ordered.append(node)
            continue
        stack.append((node, True))
        for child in await children_of(node.id):
            if child.id in seen:
                logger.warning(f"Cycle in parent links at node {child.id}, skipping")
                continue
            seen.add(child.id)
            stack.append((child, False))
    return ordered


async def check_parent(parent_id: Optional[int], lookup: NodeLookup, moving_id: Optional[int] = None):
    """
    Ensures ``parent_id`` is null or an existing folder. When ``moving_id``
    is given, also rejects parents inside that node's own subtree.
    """
    if parent_id is None:
        return
    parent = await lookup(parent_id)
    if parent is None:
        raise ValidationError(f"Parent {parent_id} does not exist")
    if not parent.is_folder:
        raise ValidationError(f"Parent {parent_id} is not a folder")
    if moving_id is None:
        return

    seen = set()
    current = parent
    while current is not None:
        if current.id == moving_id:
            raise ValidationError(f"Cannot move node {moving_id} into its own subtree")
        if current.id in seen or current.parent_id is None:
            break
        seen.add(current.id)
        current = await lookup(current.parent_id)


def merge_update(node: Node, data: NodeUpdate) -> Node:
    """Applies a partial update; id, created_at, is_folder and owner_id never change."""
    changes = data.changes()
    if node.is_folder:
        if "content" in changes:
            raise ValidationError("Folders have no content")
        if changes.get("mime_type", FOLDER_MIME_TYPE) != FOLDER_MIME_TYPE:
            raise ValidationError("Folder mime type cannot change")
    return node.model_copy(update=changes)


class FileStore(ABC):
    """CRUD over the file/folder tree plus usage accounting and search."""

    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def list(self, parent_id: Optional[int]) -> List[Node]:
        """Direct children of ``parent_id`` (None for root), without content."""

    @abstractmethod
    async def get(self, node_id: int) -> Node:
        """Node with content attached; raises NodeNotFound."""

    @abstractmethod
    async def create(self, data: NodeCreate, owner_id: Optional[int] = None) -> Node:
        ...

    @abstractmethod
    async def update(self, node_id: int, data: NodeUpdate) -> Node:
        ...

    @abstractmethod
    async def delete(self, node_id: int) -> None:
        """Cascading delete; missing ids are ignored."""

    @abstractmethod
    async def total_size(self) -> int:
        ...

    @abstractmethod
    async def search(self, query: SearchFilter) -> List[Node]:
        """Matching non-folder nodes, without content. Empty filter matches all."""


class UserStore(ABC):

    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def get(self, user_id: int) -> Optional[UserInDB]:
        ...

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[UserInDB]:
        ...

    @abstractmethod
    async def create(self, username: str, hashed_password: str) -> UserInDB:
        """Raises UserExists for a taken username."""

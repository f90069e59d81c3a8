import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from models.schemas import Node, NodeCreate, NodeUpdate, SearchFilter, UserInDB
from .base import FileStore, UserStore, check_parent, merge_update, post_order
from .exceptions import NodeNotFound, UserExists

logger = logging.getLogger(__name__)


class MemoryFileStore(FileStore):
    """Keeps nodes in an insertion-ordered dict. Nothing survives a restart."""

    def __init__(self):
        self._nodes: Dict[int, Node] = {}
        self._next_id = 1

    async def _lookup(self, node_id: int) -> Optional[Node]:
        return self._nodes.get(node_id)

    async def _children(self, node_id: int) -> List[Node]:
        return [n for n in self._nodes.values() if n.parent_id == node_id]

    async def list(self, parent_id: Optional[int]) -> List[Node]:
        return [n.without_content() for n in self._nodes.values() if n.parent_id == parent_id]

    async def get(self, node_id: int) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFound(node_id)
        return node

    async def create(self, data: NodeCreate, owner_id: Optional[int] = None) -> Node:
        await check_parent(data.parent_id, self._lookup)
        node = Node(
            id=self._next_id,
            name=data.name,
            path=data.path,
            size=data.size,
            mime_type=data.mime_type,
            content=data.content,
            parent_id=data.parent_id,
            is_folder=data.is_folder,
            created_at=datetime.now(timezone.utc),
            owner_id=owner_id,
        )
        self._nodes[node.id] = node
        self._next_id += 1
        return node

    async def update(self, node_id: int, data: NodeUpdate) -> Node:
        node = await self.get(node_id)
        if "parent_id" in data.model_fields_set:
            await check_parent(data.parent_id, self._lookup, moving_id=node_id)
        updated = merge_update(node, data)
        self._nodes[node_id] = updated
        return updated

    async def delete(self, node_id: int) -> None:
        node = self._nodes.get(node_id)
        if node is None:
            return
        for target in await post_order(node, self._children):
            self._nodes.pop(target.id, None)
        logger.info(f"Deleted node {node_id} and its subtree")

    async def total_size(self) -> int:
        return sum(n.size for n in self._nodes.values() if not n.is_folder)

    async def search(self, query: SearchFilter) -> List[Node]:
        return [n.without_content() for n in self._nodes.values() if query.matches(n)]


class MemoryUserStore(UserStore):

    def __init__(self):
        self._users: Dict[int, UserInDB] = {}
        self._next_id = 1

    async def get(self, user_id: int) -> Optional[UserInDB]:
        return self._users.get(user_id)

    async def get_by_username(self, username: str) -> Optional[UserInDB]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    async def create(self, username: str, hashed_password: str) -> UserInDB:
        if await self.get_by_username(username) is not None:
            raise UserExists(username)
        user = UserInDB(
            id=self._next_id,
            username=username,
            hashed_password=hashed_password,
            created_at=datetime.now(timezone.utc),
        )
        self._users[user.id] = user
        self._next_id += 1
        return user

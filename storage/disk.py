"""
Flat-file backend.

Layout under the storage directory::

    index.json    array of node records without content
    blobs/<id>    decoded bytes of each file node
    users.json    user records keyed by id

Every mutation is a read-modify-write of ``index.json`` guarded by an
``asyncio.Lock``; the index is replaced atomically through a temp file.
"""
import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pydantic

from models.schemas import (
    Node,
    NodeCreate,
    NodeUpdate,
    SearchFilter,
    UserInDB,
    decode_content,
    encode_content,
)
from .base import FileStore, UserStore, check_parent, merge_update, post_order
from .exceptions import NodeNotFound, StorageIOError, UserExists

logger = logging.getLogger(__name__)


def _write_json(path: Path, data) -> None:
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
    except OSError as e:
        raise StorageIOError(f"Failed to write {path.name}: {e}") from e


def _read_json(path: Path, default):
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as e:
        raise StorageIOError(f"Failed to read {path.name}: {e}") from e


class DiskFileStore(FileStore):

    def __init__(self, root):
        self.root = Path(root)
        self.index_path = self.root / "index.json"
        self.blob_dir = self.root / "blobs"
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        try:
            self.blob_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Cannot create storage directory: {e}") from e
        if not self.index_path.exists():
            _write_json(self.index_path, [])
        logger.info(f"Disk storage ready at: {self.root.absolute()}")

    # index and blob helpers

    def _load(self) -> Dict[int, Node]:
        records = _read_json(self.index_path, [])
        try:
            nodes = [Node.model_validate(r) for r in records]
        except (TypeError, pydantic.ValidationError) as e:
            raise StorageIOError(f"Corrupt record in {self.index_path.name}: {e}") from e
        return {n.id: n for n in nodes}

    def _save(self, nodes: Dict[int, Node]) -> None:
        records = [n.model_dump(mode="json", exclude={"content"}) for n in nodes.values()]
        _write_json(self.index_path, records)

    def _blob_path(self, node_id: int) -> Path:
        return self.blob_dir / str(node_id)

    def _write_blob(self, node_id: int, content: str) -> None:
        try:
            with open(self._blob_path(node_id), "wb") as f:
                f.write(decode_content(content))
        except OSError as e:
            raise StorageIOError(f"Failed to write content of node {node_id}: {e}") from e

    def _read_blob(self, node_id: int) -> str:
        try:
            with open(self._blob_path(node_id), "rb") as f:
                return encode_content(f.read())
        except OSError as e:
            raise StorageIOError(f"Failed to read content of node {node_id}: {e}") from e

    def _remove_blob(self, node_id: int) -> None:
        try:
            self._blob_path(node_id).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove content of node {node_id}: {e}")

    def _with_content(self, node: Node) -> Node:
        if node.is_folder:
            return node
        return node.model_copy(update={"content": self._read_blob(node.id)})

    # FileStore

    async def list(self, parent_id: Optional[int]) -> List[Node]:
        return [n for n in self._load().values() if n.parent_id == parent_id]

    async def get(self, node_id: int) -> Node:
        node = self._load().get(node_id)
        if node is None:
            raise NodeNotFound(node_id)
        return self._with_content(node)

    async def create(self, data: NodeCreate, owner_id: Optional[int] = None) -> Node:
        async with self._lock:
            nodes = self._load()

            async def lookup(node_id):
                return nodes.get(node_id)

            await check_parent(data.parent_id, lookup)
            node = Node(
                id=max(nodes, default=0) + 1,
                name=data.name,
                path=data.path,
                size=data.size,
                mime_type=data.mime_type,
                parent_id=data.parent_id,
                is_folder=data.is_folder,
                created_at=datetime.now(timezone.utc),
                owner_id=owner_id,
            )
            if not node.is_folder:
                self._write_blob(node.id, data.content)
            nodes[node.id] = node
            self._save(nodes)
        return node.model_copy(update={"content": data.content})

    async def update(self, node_id: int, data: NodeUpdate) -> Node:
        async with self._lock:
            nodes = self._load()
            node = nodes.get(node_id)
            if node is None:
                raise NodeNotFound(node_id)

            async def lookup(other_id):
                return nodes.get(other_id)

            if "parent_id" in data.model_fields_set:
                await check_parent(data.parent_id, lookup, moving_id=node_id)
            updated = merge_update(node, data)
            if data.content is not None:
                self._write_blob(node_id, data.content)
            nodes[node_id] = updated.without_content()
            self._save(nodes)
        if data.content is not None:
            return updated
        return self._with_content(updated)

    async def delete(self, node_id: int) -> None:
        async with self._lock:
            nodes = self._load()
            node = nodes.get(node_id)
            if node is None:
                return

            async def children(parent_id):
                return [n for n in nodes.values() if n.parent_id == parent_id]

            for target in await post_order(node, children):
                if not target.is_folder:
                    self._remove_blob(target.id)
                nodes.pop(target.id, None)
            self._save(nodes)

    async def total_size(self) -> int:
        return sum(n.size for n in self._load().values() if not n.is_folder)

    async def search(self, query: SearchFilter) -> List[Node]:
        return [n for n in self._load().values() if query.matches(n)]


class DiskUserStore(UserStore):

    def __init__(self, root):
        self.root = Path(root)
        self.users_path = self.root / "users.json"
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Cannot create storage directory: {e}") from e

    def _load(self) -> Dict[int, UserInDB]:
        records = _read_json(self.users_path, {})
        try:
            return {int(k): UserInDB.model_validate(v) for k, v in records.items()}
        except (AttributeError, ValueError) as e:
            raise StorageIOError(f"Corrupt record in {self.users_path.name}: {e}") from e

    async def get(self, user_id: int) -> Optional[UserInDB]:
        return self._load().get(user_id)

    async def get_by_username(self, username: str) -> Optional[UserInDB]:
        for user in self._load().values():
            if user.username == username:
                return user
        return None

    async def create(self, username: str, hashed_password: str) -> UserInDB:
        async with self._lock:
            users = self._load()
            if any(u.username == username for u in users.values()):
                raise UserExists(username)
            user = UserInDB(
                id=max(users, default=0) + 1,
                username=username,
                hashed_password=hashed_password,
                created_at=datetime.now(timezone.utc),
            )
            users[user.id] = user
            _write_json(self.users_path, {str(k): v.model_dump(mode="json") for k, v in users.items()})
        return user

"""
Relational backend on SQLAlchemy's async engine.

Both stores share one :class:`Database`, which owns the engine and session
factory and creates the tables on first ``init``.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import defer

from config.database import Base, make_engine, make_session_factory
from models import FileModel, User, get_user
from models.schemas import Node, NodeCreate, NodeUpdate, SearchFilter, UserInDB, as_utc
from .base import FileStore, UserStore, check_parent, merge_update, post_order
from .exceptions import NodeNotFound, StorageIOError, UserExists

logger = logging.getLogger(__name__)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_node(row: FileModel, with_content: bool = True) -> Node:
    return Node(
        id=row.id,
        name=row.name,
        path=row.path,
        size=row.size,
        mime_type=row.mime_type,
        content=row.content if with_content and not row.is_folder else "",
        parent_id=row.parent_id,
        is_folder=row.is_folder,
        created_at=as_utc(row.created_at),
        owner_id=row.owner_id,
    )


def to_user(row: User) -> UserInDB:
    return UserInDB(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        created_at=as_utc(row.created_at),
    )


class Database:
    def __init__(self, url: str):
        self.url = url
        self.engine = None
        self.sessions = None

    async def connect(self) -> None:
        if self.engine is not None:
            return
        self.engine = make_engine(self.url)
        self.sessions = make_session_factory(self.engine)
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageIOError(f"Failed to initialize database: {e}") from e
        logger.info("Database tables created successfully")

    async def dispose(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.sessions = None

    @asynccontextmanager
    async def transaction(self):
        try:
            async with self.sessions() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error: {str(e)}", exc_info=True)
            raise StorageIOError(str(e)) from e


class DatabaseFileStore(FileStore):

    def __init__(self, db: Database):
        self.db = db

    async def init(self) -> None:
        await self.db.connect()

    async def close(self) -> None:
        await self.db.dispose()

    @staticmethod
    def _metadata_query():
        return select(FileModel).options(defer(FileModel.content)).order_by(FileModel.id)

    async def list(self, parent_id: Optional[int]) -> List[Node]:
        query = self._metadata_query()
        if parent_id is None:
            query = query.where(FileModel.parent_id.is_(None))
        else:
            query = query.where(FileModel.parent_id == parent_id)
        async with self.db.transaction() as session:
            rows = (await session.execute(query)).scalars().all()
            return [to_node(row, with_content=False) for row in rows]

    async def get(self, node_id: int) -> Node:
        async with self.db.transaction() as session:
            row = await session.get(FileModel, node_id)
            if row is None:
                raise NodeNotFound(node_id)
            return to_node(row)

    async def create(self, data: NodeCreate, owner_id: Optional[int] = None) -> Node:
        async with self.db.transaction() as session:
            async def lookup(node_id):
                row = await session.get(FileModel, node_id)
                return to_node(row, with_content=False) if row else None

            await check_parent(data.parent_id, lookup)
            row = FileModel(
                name=data.name,
                path=data.path,
                size=data.size,
                mime_type=data.mime_type,
                content=data.content,
                parent_id=data.parent_id,
                is_folder=data.is_folder,
                owner_id=owner_id,
                created_at=datetime.now(timezone.utc),
            )
            session.add(row)
            await session.flush()
            return to_node(row)

    async def update(self, node_id: int, data: NodeUpdate) -> Node:
        async with self.db.transaction() as session:
            row = await session.get(FileModel, node_id)
            if row is None:
                raise NodeNotFound(node_id)

            async def lookup(other_id):
                other = await session.get(FileModel, other_id)
                return to_node(other, with_content=False) if other else None

            if "parent_id" in data.model_fields_set:
                await check_parent(data.parent_id, lookup, moving_id=node_id)
            updated = merge_update(to_node(row), data)
            for field, value in data.changes().items():
                setattr(row, field, value)
            return updated

    async def delete(self, node_id: int) -> None:
        async with self.db.transaction() as session:
            row = await session.get(FileModel, node_id)
            if row is None:
                return

            async def children(parent_id):
                rows = (await session.execute(
                    self._metadata_query().where(FileModel.parent_id == parent_id)
                )).scalars().all()
                return [to_node(r, with_content=False) for r in rows]

            targets = await post_order(to_node(row, with_content=False), children)
            session.expunge_all()
            for target in targets:
                await session.execute(delete(FileModel).where(FileModel.id == target.id))

    async def total_size(self) -> int:
        query = select(func.coalesce(func.sum(FileModel.size), 0)).where(FileModel.is_folder.is_(False))
        async with self.db.transaction() as session:
            return int((await session.execute(query)).scalar_one())

    async def search(self, query: SearchFilter) -> List[Node]:
        stmt = self._metadata_query().where(FileModel.is_folder.is_(False))
        if query.name is not None:
            stmt = stmt.where(FileModel.name.ilike(f"%{escape_like(query.name)}%", escape="\\"))
        if query.type is not None:
            stmt = stmt.where(func.substr(FileModel.mime_type, 1, len(query.type)) == query.type)
        if query.min_size is not None:
            stmt = stmt.where(FileModel.size >= query.min_size)
        if query.max_size is not None:
            stmt = stmt.where(FileModel.size <= query.max_size)
        if query.start_date is not None:
            stmt = stmt.where(FileModel.created_at >= query.start_date)
        if query.end_date is not None:
            stmt = stmt.where(FileModel.created_at <= query.end_date)
        async with self.db.transaction() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [to_node(row, with_content=False) for row in rows]


class DatabaseUserStore(UserStore):

    def __init__(self, db: Database):
        self.db = db

    async def init(self) -> None:
        await self.db.connect()

    async def close(self) -> None:
        await self.db.dispose()

    async def get(self, user_id: int) -> Optional[UserInDB]:
        async with self.db.transaction() as session:
            row = await session.get(User, user_id)
            return to_user(row) if row else None

    async def get_by_username(self, username: str) -> Optional[UserInDB]:
        async with self.db.transaction() as session:
            row = await get_user(session, username)
            return to_user(row) if row else None

    async def create(self, username: str, hashed_password: str) -> UserInDB:
        try:
            async with self.db.sessions() as session:
                async with session.begin():
                    if await get_user(session, username) is not None:
                        raise UserExists(username)
                    row = User(
                        username=username,
                        hashed_password=hashed_password,
                        created_at=datetime.now(timezone.utc),
                    )
                    session.add(row)
                    await session.flush()
                    return to_user(row)
        except IntegrityError as e:
            raise UserExists(username) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error: {str(e)}", exc_info=True)
            raise StorageIOError(str(e)) from e

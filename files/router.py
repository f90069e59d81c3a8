from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from fastapi_cache import FastAPICache
from fastapi_cache.decorator import cache
from contextlib import contextmanager
from typing import List, Optional
from urllib.parse import quote
import logging

import pydantic

from auth.dependencies import get_request_user
from config.dependencies import get_file_store, get_settings
from config.settings import Settings
from models.schemas import Node, NodeCreate, NodeUpdate, SearchFilter, StorageSummary, UserInDB
from storage import FileStore, FileTooLarge, NodeNotFound, QuotaExceeded, ValidationError
from .quota import check_quota, storage_summary

router = APIRouter(
    prefix="/api/files",
    tags=["files"],
    dependencies=[Depends(get_request_user)],
)
storage_router = APIRouter(
    prefix="/api/storage",
    tags=["storage"],
    dependencies=[Depends(get_request_user)],
)
logger = logging.getLogger(__name__)

STORAGE_CACHE_NAMESPACE = "storage"


@contextmanager
def store_errors(action: str):
    """Maps store exceptions onto HTTP errors; anything unexpected becomes a 500."""
    try:
        yield
    except HTTPException:
        raise
    except NodeNotFound:
        raise HTTPException(status_code=404, detail="File not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileTooLarge as e:
        raise HTTPException(status_code=413, detail=str(e))
    except QuotaExceeded as e:
        raise HTTPException(status_code=status.HTTP_507_INSUFFICIENT_STORAGE, detail=str(e))
    except Exception as e:
        logger.error(f"{action} failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"{action} failed")


def parse_parent_id(raw: Optional[str]) -> Optional[int]:
    """Absent or empty means root."""
    if raw is None or raw.strip() in ("", "null"):
        return None
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=422, detail="parentId must be an integer")


def storage_key_builder(func, namespace: str = "", *, request=None, response=None, args=(), kwargs=None) -> str:
    return f"{namespace}:summary"


async def invalidate_storage_cache() -> None:
    await FastAPICache.clear(namespace=STORAGE_CACHE_NAMESPACE)


@router.get("", response_model=List[Node], summary="List folder contents")
async def list_files(
    parentId: Optional[str] = Query(None),
    store: FileStore = Depends(get_file_store)
):
    parent_id = parse_parent_id(parentId)
    with store_errors("Listing files"):
        return await store.list(parent_id)


@router.get("/search", response_model=List[Node], summary="Search files")
async def search_files(
    q: Optional[str] = None,
    name: Optional[str] = None,
    type: Optional[str] = None,
    minSize: Optional[int] = Query(None, ge=0),
    maxSize: Optional[int] = Query(None, ge=0),
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    store: FileStore = Depends(get_file_store)
):
    """
    All predicates are optional and combined with AND. Folders never match;
    with no predicates every file is returned.
    """
    try:
        query = SearchFilter(
            name=name if name is not None else q,
            type=type,
            min_size=minSize,
            max_size=maxSize,
            start_date=startDate,
            end_date=endDate,
        )
    except pydantic.ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))

    with store_errors("Search"):
        return await store.search(query)


@router.get("/{node_id}", response_model=Node, summary="Get a file with content")
async def get_file(node_id: int, store: FileStore = Depends(get_file_store)):
    with store_errors("Reading file"):
        return await store.get(node_id)


@router.get("/{node_id}/download", summary="Download raw file content")
async def download_file(node_id: int, store: FileStore = Depends(get_file_store)):
    with store_errors("Download"):
        node = await store.get(node_id)
    if node.is_folder:
        raise HTTPException(status_code=400, detail="Folders cannot be downloaded")
    return Response(
        content=node.decoded_content(),
        media_type=node.mime_type,
        headers={"Content-Disposition": f"inline; filename*=UTF-8''{quote(node.name)}"},
    )


@router.post("", response_model=Node, summary="Upload a file or create a folder")
async def create_file(
    data: NodeCreate,
    user: Optional[UserInDB] = Depends(get_request_user),
    store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings)
):
    with store_errors("File upload"):
        if not data.is_folder:
            await check_quota(store, settings, data.size)
        node = await store.create(data, owner_id=user.id if user else None)
    logger.info(f"Created {'folder' if node.is_folder else 'file'} {node.name!r} (id={node.id})")
    await invalidate_storage_cache()
    return node


@router.patch("/{node_id}", response_model=Node, summary="Rename, move or replace content")
async def update_file(
    node_id: int,
    data: NodeUpdate,
    store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings)
):
    with store_errors("Update"):
        if data.content is not None:
            current = await store.get(node_id)
            if not current.is_folder:
                await check_quota(store, settings, data.size, released=current.size)
        node = await store.update(node_id, data)
    await invalidate_storage_cache()
    return node


@router.delete("/{node_id}", summary="Delete a file or folder recursively")
async def delete_file(node_id: int, store: FileStore = Depends(get_file_store)):
    with store_errors("Delete"):
        await store.delete(node_id)
    await invalidate_storage_cache()
    return {"success": True}


@storage_router.get("", response_model=StorageSummary, summary="Storage usage")
@cache(
    namespace=STORAGE_CACHE_NAMESPACE,
    key_builder=storage_key_builder,
)
async def get_storage(
    store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings)
):
    with store_errors("Storage summary"):
        summary = await storage_summary(store, settings)
    return summary.model_dump()

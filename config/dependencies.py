from fastapi import Request

from config.settings import Settings
from storage import FileStore, UserStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store

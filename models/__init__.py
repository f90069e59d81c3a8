from config.database import Base
from .user import User, get_user
from .file import FileModel

__all__ = ['Base', 'User', 'FileModel', 'get_user']

from config.database import Base

__all__ = ['Base']

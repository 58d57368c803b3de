from shared.database.postgres import Base, get_async_engine

__all__ = ["Base", "get_async_engine"]

from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError

from src.domain.exceptions import StorageError


@asynccontextmanager
async def storage_errors(operation: str):
    """Re-raise driver and ORM failures as StorageError"""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"Storage failed during {operation}") from exc

import uuid
from datetime import UTC, datetime

from sqlmodel import SQLModel


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(UTC).replace(tzinfo=None)


class BaseModel(SQLModel):
    pass

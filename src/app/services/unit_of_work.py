from abc import ABC, abstractmethod

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.app.repositories.session_repository import ISessionRepository
from src.app.repositories.tenant_repository import ITenantRepository
from src.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """
    Transaction boundary shared by the repositories of one request.

    Work is only persisted by commit(); leaving the context discards
    anything uncommitted. Failures surface as StorageError.
    """

    users: IUserRepository
    tenants: ITenantRepository
    sessions: ISessionRepository
    audit_events: IAuditEventRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass

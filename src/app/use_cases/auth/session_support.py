"""
Shared steps of every flow that hands out or withdraws session credentials.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from src.app.services.second_factor import BACKUP_CODE_COUNT, ISecondFactorVerifier
from src.app.services.token_codec import IssuedToken, ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.domain.base import utcnow
from src.domain.device import parse_user_agent
from src.domain.entities import AuditEvent, AuditStatus, Session, User
from src.domain.exceptions import AlreadyUsed
from .dtos import RequestOrigin

logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 512


def hash_token(token: str) -> str:
    """SHA-256 of a credential, the only form that is ever persisted"""
    return hashlib.sha256(token.encode()).hexdigest()


def seconds_until(issued: IssuedToken) -> int:
    return max(int((issued.expires_at - utcnow()).total_seconds()), 0)


def build_session_record(
    issued: IssuedToken,
    user_id: UUID,
    tenant_id: Optional[UUID],
    origin: RequestOrigin,
) -> Session:
    device = parse_user_agent(origin.user_agent)
    user_agent = origin.user_agent[:USER_AGENT_MAX_LENGTH] if origin.user_agent else None
    return Session(
        session_id=issued.token_id,
        user_id=user_id,
        tenant_id=tenant_id,
        token_hash=hash_token(issued.token),
        expires_at=issued.expires_at,
        ip_address=origin.ip_address,
        user_agent=user_agent,
        device_type=device.type,
        device_browser=device.browser,
        device_os=device.os,
        last_used_ip=origin.ip_address,
    )


@dataclass(frozen=True)
class IssuedCredentials:
    access: IssuedToken
    session: IssuedToken
    record: Session


async def issue_credentials(
    uow: UnitOfWork, codec: ITokenCodec, user: User, origin: RequestOrigin
) -> IssuedCredentials:
    """Sign an access + session pair and persist the session record (no commit)"""
    session_token = codec.issue_session(user.id, user.tenant_id)
    record = await uow.sessions.create(
        build_session_record(session_token, user.id, user.tenant_id, origin)
    )
    access_token = codec.issue_access(
        user.id,
        user.tenant_id,
        user.role.value,
        user.email,
        session_id=session_token.token_id,
    )
    return IssuedCredentials(access=access_token, session=session_token, record=record)


async def record_audit(
    uow: UnitOfWork,
    action: str,
    origin: Optional[RequestOrigin],
    user_id: Optional[UUID] = None,
    tenant_id: Optional[UUID] = None,
    status: AuditStatus = AuditStatus.success,
    **metadata,
) -> AuditEvent:
    audit = AuditEvent(
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        status=status,
        ip_address=origin.ip_address if origin else None,
        event_metadata=metadata or None,
    )
    return await uow.audit_events.create(audit)


async def invalidate_user_cache(
    cache: Optional[IUserCache], user_id: UUID, everything: bool = False
) -> None:
    """Best-effort: a cache outage must never fail the calling flow"""
    if cache is None:
        return
    try:
        if everything:
            await cache.invalidate_all(user_id)
        else:
            await cache.invalidate(user_id)
    except Exception:
        logger.warning(f"Cache invalidation failed for user {user_id}", exc_info=True)


async def consume_backup_code(
    uow: UnitOfWork, verifier: ISecondFactorVerifier, user: User, code: str
) -> int:
    """
    Spend one backup code and persist it with a version-checked write.

    A lost write reloads the record, so the retry sees what the concurrent
    writer consumed and rejects the same code with AlreadyUsed. Raises
    InvalidCode or AlreadyUsed; returns the remaining count.
    """
    for _ in range(BACKUP_CODE_COUNT + 1):
        version = user.second_factor_version
        remaining = verifier.consume_backup_code(user, code)
        if await uow.users.save_second_factor(user, version):
            return remaining
        logger.info(f"Concurrent second-factor write for user {user.id}, retrying")
    raise AlreadyUsed("Backup code has already been used")

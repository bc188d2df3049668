"""
Second-Factor Verifier interface.

Works on a loaded User credential record and mutates it in place; the
calling use case persists the record through the Unit of Work.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from src.domain.entities import User

BACKUP_CODE_COUNT = 10


@dataclass(frozen=True)
class Enrollment:
    secret: str
    provisioning_uri: str


class ISecondFactorVerifier(ABC):
    @abstractmethod
    def begin_enrollment(self, user: User, account_name: str) -> Enrollment:
        """New pending secret; login challenges stay off until activate()"""

    @abstractmethod
    def activate(self, user: User, code: str) -> List[str]:
        """Enable 2FA and return the plaintext backup codes, exactly once"""

    @abstractmethod
    def challenge(self, user: User, code: str) -> bool:
        """Check a time-based code against an enabled secret"""

    @abstractmethod
    def consume_backup_code(self, user: User, code: str) -> int:
        """Mark a backup code used and return how many remain"""

    @abstractmethod
    def remaining_backup_codes(self, user: User) -> int:
        pass

    @abstractmethod
    def deactivate(self, user: User) -> None:
        """Clear secret, backup codes and consumed set"""

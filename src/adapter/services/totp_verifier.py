import hashlib
import hmac
import logging
import secrets
from typing import List

import pyotp

from src.app.services.second_factor import (
    BACKUP_CODE_COUNT,
    Enrollment,
    ISecondFactorVerifier,
)
from src.domain.entities import User
from src.domain.exceptions import AlreadyUsed, InvalidCode, ValidationError

logger = logging.getLogger(__name__)

# No 0/O or 1/I so codes survive being read aloud or copied by hand
BACKUP_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
TOTP_VALID_WINDOW = 2


def normalize_backup_code(code: str) -> str:
    return "".join(code.split()).replace("-", "").upper()


def hash_backup_code(code: str) -> str:
    return hashlib.sha256(normalize_backup_code(code).encode()).hexdigest()


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> List[str]:
    codes = []
    for _ in range(count):
        raw = "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(8))
        codes.append(f"{raw[:4]}-{raw[4:]}")
    return codes


class TotpSecondFactorVerifier(ISecondFactorVerifier):
    """RFC 6238 codes via pyotp plus hashed one-time backup codes"""

    def __init__(self, issuer: str, valid_window: int = TOTP_VALID_WINDOW):
        self.issuer = issuer
        self.valid_window = valid_window

    def begin_enrollment(self, user: User, account_name: str) -> Enrollment:
        if user.two_factor_enabled:
            raise ValidationError("Two-factor authentication is already enabled")

        secret = pyotp.random_base32()
        user.two_factor_secret = secret
        uri = pyotp.TOTP(secret).provisioning_uri(
            name=account_name, issuer_name=self.issuer
        )
        logger.info(f"2FA enrollment started for user {user.id}")
        return Enrollment(secret=secret, provisioning_uri=uri)

    def _verify_totp(self, secret: str, code: str) -> bool:
        code = "".join((code or "").split())
        if not code.isdigit():
            return False
        return pyotp.TOTP(secret).verify(code, valid_window=self.valid_window)

    def activate(self, user: User, code: str) -> List[str]:
        if user.two_factor_enabled:
            raise ValidationError("Two-factor authentication is already enabled")
        if not user.two_factor_secret:
            raise ValidationError("No pending two-factor enrollment")
        if not self._verify_totp(user.two_factor_secret, code):
            raise InvalidCode("Invalid verification code")

        codes = generate_backup_codes()
        user.two_factor_enabled = True
        user.backup_code_hashes = [hash_backup_code(c) for c in codes]
        user.backup_codes_used = []
        logger.info(f"2FA activated for user {user.id}")
        return codes

    def challenge(self, user: User, code: str) -> bool:
        if not user.two_factor_enabled or not user.two_factor_secret:
            return False
        return self._verify_totp(user.two_factor_secret, code)

    def consume_backup_code(self, user: User, code: str) -> int:
        candidate = hash_backup_code(code or "")
        match = None
        for stored in user.backup_code_hashes or []:
            if hmac.compare_digest(stored, candidate):
                match = stored
                break

        if match is None:
            raise InvalidCode("Invalid backup code")
        if match in (user.backup_codes_used or []):
            raise AlreadyUsed("Backup code has already been used")

        # JSON columns only track reassignment
        user.backup_codes_used = list(user.backup_codes_used or []) + [match]
        remaining = self.remaining_backup_codes(user)
        logger.info(f"Backup code consumed for user {user.id}, {remaining} remaining")
        return remaining

    def remaining_backup_codes(self, user: User) -> int:
        return len(user.backup_code_hashes or []) - len(user.backup_codes_used or [])

    def deactivate(self, user: User) -> None:
        user.two_factor_enabled = False
        user.two_factor_secret = None
        user.backup_code_hashes = []
        user.backup_codes_used = []
        logger.info(f"2FA disabled for user {user.id}")

"""
Second Factor Use Cases
"""

from .two_factor_use_case import TwoFactorUseCase

__all__ = ["TwoFactorUseCase"]

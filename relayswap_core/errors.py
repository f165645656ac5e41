"""
Error taxonomy for RelaySwap.

Every engine failure is an ``ExchangeError`` subclass carrying a stable
numeric ``code``.  Codes are part of the public surface and never change;
110+ cover collaborator and arithmetic faults.
"""

from __future__ import annotations


ERR_NOT_AUTHORIZED = 100
ERR_INVALID_NONCE = 101
ERR_SLIPPAGE = 102
ERR_INSUFFICIENT_LIQUIDITY = 103
ERR_IDENTICAL_ASSETS = 104
ERR_ZERO_AMOUNT = 105
ERR_INSUFFICIENT_BALANCE = 106
ERR_POOL_EXISTS = 107
ERR_POOL_NOT_FOUND = 108
ERR_INVALID_SIGNATURE = 109
ERR_UNKNOWN_ASSET = 110
ERR_TRANSFER_FAILED = 111
ERR_ARITHMETIC_OVERFLOW = 112
ERR_INVARIANT_VIOLATION = 113


class ExchangeError(Exception):
    """Base class for all typed engine failures."""
    code: int = 0
    default_message: str = "Exchange error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }


class NotAuthorized(ExchangeError):
    code = ERR_NOT_AUTHORIZED
    default_message = "Caller is not authorized"


class InvalidNonce(ExchangeError):
    code = ERR_INVALID_NONCE
    default_message = "Nonce already consumed for account"


class Slippage(ExchangeError):
    code = ERR_SLIPPAGE
    default_message = "Amount below caller minimum"


class InsufficientLiquidity(ExchangeError):
    code = ERR_INSUFFICIENT_LIQUIDITY
    default_message = "Insufficient liquidity"


class IdenticalAssets(ExchangeError):
    code = ERR_IDENTICAL_ASSETS
    default_message = "Assets must differ"


class ZeroAmount(ExchangeError):
    code = ERR_ZERO_AMOUNT
    default_message = "Amount must be positive"


class InsufficientBalance(ExchangeError):
    code = ERR_INSUFFICIENT_BALANCE
    default_message = "Insufficient LP share balance"


class PoolExists(ExchangeError):
    code = ERR_POOL_EXISTS
    default_message = "Pool already exists"


class PoolNotFound(ExchangeError):
    code = ERR_POOL_NOT_FOUND
    default_message = "Pool not found"


class InvalidSignature(ExchangeError):
    code = ERR_INVALID_SIGNATURE
    default_message = "Signature does not match public key"


class UnknownAsset(ExchangeError):
    code = ERR_UNKNOWN_ASSET
    default_message = "Asset is not registered"


class TransferFailed(ExchangeError):
    code = ERR_TRANSFER_FAILED
    default_message = "Token transfer failed"


class ArithmeticOverflow(ExchangeError):
    code = ERR_ARITHMETIC_OVERFLOW
    default_message = "Unsigned 128-bit arithmetic fault"


class InvariantViolation(ExchangeError):
    code = ERR_INVARIANT_VIOLATION
    default_message = "Post-operation invariant failed"


ERRORS_BY_CODE: dict[int, type[ExchangeError]] = {
    cls.code: cls
    for cls in (
        NotAuthorized,
        InvalidNonce,
        Slippage,
        InsufficientLiquidity,
        IdenticalAssets,
        ZeroAmount,
        InsufficientBalance,
        PoolExists,
        PoolNotFound,
        InvalidSignature,
        UnknownAsset,
        TransferFailed,
        ArithmeticOverflow,
        InvariantViolation,
    )
}

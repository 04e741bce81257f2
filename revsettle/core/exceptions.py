"""
revsettle Exception Hierarchy

All exceptions inherit from RevSettleError for easy catching.

Every error is terminal for the invocation that raised it: the
surrounding Env.invocation() rolls back all state mutated during the
call and re-raises.
"""


class RevSettleError(Exception):
    """Base exception for all revsettle errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# ── Validation ────────────────────────────────────────────────

class ValidationError(RevSettleError):
    """Raised when an argument is malformed or out of range"""
    pass


class ConfigError(ValidationError):
    """Raised when a configuration file or mapping is malformed"""
    pass


# ── State conflicts ───────────────────────────────────────────

class StateConflictError(RevSettleError):
    """Raised when an operation conflicts with stored state"""
    pass


class AlreadyInitializedError(StateConflictError):
    """Raised when a one-time initialization runs twice"""
    pass


class NotInitializedError(StateConflictError):
    """Raised when an operation needs state that was never initialized"""
    pass


class AttestationExistsError(StateConflictError):
    """Raised when an attestation already exists for (business, period)"""
    pass


class AlreadyRedeemedError(StateConflictError):
    """Raised when a bond was already redeemed for a period"""
    pass


class BondNotActiveError(StateConflictError):
    """Raised when a bond is FullyRedeemed or Defaulted"""
    pass


class FullyRedeemedError(StateConflictError):
    """Raised when a bond has no remaining face value to pay"""
    pass


class AlreadyRevokedError(StateConflictError):
    """Raised when an attestation is revoked twice"""
    pass


class DisputeStatusError(StateConflictError):
    """Raised when a dispute transition is attempted from the wrong status"""
    pass


class DuplicateDisputeError(StateConflictError):
    """Raised when a challenger already holds an open dispute on an attestation"""
    pass


# ── Lookups ───────────────────────────────────────────────────

class NotFoundError(RevSettleError):
    """Raised when a referenced record does not exist"""
    pass


class AttestationNotFoundError(NotFoundError):
    pass


class BondNotFoundError(NotFoundError):
    pass


class DisputeNotFoundError(NotFoundError):
    pass


class ContractNotFoundError(NotFoundError):
    """Raised when no contract is registered at an address"""
    pass


# ── Authorization ─────────────────────────────────────────────

class AuthorizationError(RevSettleError):
    """Raised when the caller cannot prove an identity or lacks a role"""
    pass


# ── Dependent calls ───────────────────────────────────────────

class DependencyError(RevSettleError):
    """Raised when a call into another contract fails"""
    pass


class TransferError(DependencyError):
    """Raised when a token transfer fails"""
    pass


class InsufficientBalanceError(TransferError):
    """Raised when the payer cannot cover a transfer"""
    pass


class AttestationRevokedError(DependencyError):
    """Raised when a redemption references a revoked attestation"""
    pass


# ── Journal ───────────────────────────────────────────────────

class JournalError(RevSettleError):
    """Raised when journal operations or integrity checks fail"""
    pass

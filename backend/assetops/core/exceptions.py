"""
Depreciation Exceptions

    DepreciationError (base)
    +-- MissingDepreciationSetupError   asset lacks its rate / monthly figure (NO_SETUP)
    +-- LedgerInvariantError            book value state would break; aborts the run
    +-- DepreciationPersistenceError    the batch transaction failed and was rolled back
    +-- DepreciationAuthorizationError  caller may not commit a batch run
"""
from typing import Optional


class DepreciationError(Exception):
    """Base class for depreciation errors"""
    code = "DEPRECIATION_ERROR"


class MissingDepreciationSetupError(DepreciationError):
    code = "NO_SETUP"

    def __init__(self, asset_id, reason: str = "Missing depreciation setup"):
        self.asset_id = asset_id
        self.reason = reason
        super().__init__(f"Asset {asset_id}: {reason}")


class LedgerInvariantError(DepreciationError):
    code = "LEDGER_INVARIANT"

    def __init__(self, asset_id, message: str):
        self.asset_id = asset_id
        super().__init__(f"Ledger invariant broken for asset {asset_id}: {message}")


class DepreciationPersistenceError(DepreciationError):
    code = "PERSISTENCE_FAILED"

    def __init__(self, business_unit_id, cause: Optional[BaseException] = None):
        self.business_unit_id = business_unit_id
        self.cause = cause
        message = f"Depreciation run for business unit {business_unit_id} was rolled back"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class DepreciationAuthorizationError(DepreciationError, PermissionError):
    code = "FORBIDDEN"

    def __init__(self, role: Optional[str], allowed):
        self.role = role
        self.allowed = list(allowed)
        super().__init__(
            f"Role '{role}' may not commit depreciation runs. "
            f"Allowed roles: {', '.join(self.allowed)}"
        )

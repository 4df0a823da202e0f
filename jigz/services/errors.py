# jigz/services/errors.py
"""Domain errors raised by the service layer.

Routes never build error payloads themselves; `jigz.main` registers a
single handler that renders any `JigzError` through `to_dict()`.
"""
from typing import Any, Dict, Optional


class JigzError(Exception):
    status_code = 400
    code: Optional[str] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.code:
            body["code"] = self.code
        return body


class InsufficientCoins(JigzError):
    status_code = 402
    code = "insufficient_coins"

    def __init__(self, coins_needed: int, coins_available: int, message: Optional[str] = None):
        super().__init__(
            message
            or f"Insufficient coins. You need {coins_needed} coins. Coins reset monthly."
        )
        self.coins_needed = coins_needed
        self.coins_available = coins_available

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["coinsNeeded"] = self.coins_needed
        body["coinsAvailable"] = self.coins_available
        return body


class NotFound(JigzError):
    status_code = 404
    code = "not_found"


class Forbidden(JigzError):
    status_code = 403
    code = "forbidden"


class AlreadyApplied(JigzError):
    status_code = 409
    code = "already_applied"

    def __init__(self, message: str = "You have already applied to this job"):
        super().__init__(message)


class AlreadyReviewed(JigzError):
    status_code = 409
    code = "already_reviewed"


class AlreadyEndorsed(JigzError):
    status_code = 409
    code = "already_endorsed"


class NotEligible(JigzError):
    code = "not_eligible"


class InvalidState(JigzError):
    code = "invalid_state"


class AlreadyReported(JigzError):
    status_code = 409
    code = "already_reported"

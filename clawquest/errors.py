"""Game error taxonomy. Every rejection is raised before any state is mutated."""

from typing import Any


class GameError(Exception):
    """Base class for rejections that are reported back to the caller."""

    status_code: int = 400

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.detail, **self.extra}


class NotFoundError(GameError):
    """Agent, hex or gang does not exist."""

    status_code = 404


class ConflictError(GameError):
    """The target is in a state that forbids the operation (e.g. hex already claimed)."""

    status_code = 409


class ValidationFailedError(GameError):
    """Content filter trip, length bound violation or rule breach."""

    status_code = 400


class SelfChallengeError(ValidationFailedError):
    def __init__(self, detail: str = "Cannot challenge your own hex", **extra: Any):
        super().__init__(detail, **extra)


class InsufficientBalanceError(GameError):
    """A debit would drive a wallet below zero."""

    status_code = 400

    def __init__(self, required: float, current: float, action: str = "this action"):
        super().__init__(
            f"Insufficient balance. {action.capitalize()} costs {required} UDC. "
            "Please deposit more credits.",
            required_balance=required,
            current_balance=current,
        )
        self.required = required
        self.current = current


class GangFullError(ConflictError):
    def __init__(self, cap: int):
        super().__init__(f"Gang is full (max {cap} members)")

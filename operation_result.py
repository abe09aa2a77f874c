"""
OperationResult - Structured return type for user-invoked organizer operations.

Adding a tab, jumping, and every session command report back with this instead
of raising, so the caller can render a message for any outcome.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class OperationResult:
    """
    Structured result for a user-invoked operation.

    Attributes:
        ok: Whether the operation did what was asked
        reason: Human-readable explanation when ok is False
        slot: Slot number the operation assigned or found, if any
        data: Extra payload (counts for session load, plan summary, ...)

    Example:
        >>> result = await tab_manager.add(tab)
        >>> if not result:
        ...     print(result.reason)
    """
    ok: bool
    reason: Optional[str] = None
    slot: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, slot: Optional[int] = None, **data) -> "OperationResult":
        return cls(ok=True, slot=slot, data=data)

    @classmethod
    def failure(cls, reason: str, slot: Optional[int] = None, **data) -> "OperationResult":
        return cls(ok=False, reason=reason, slot=slot, data=data)

    def __bool__(self) -> bool:
        """Allow truthiness check: ``if result: ...``"""
        return self.ok

    def __repr__(self) -> str:
        status = "✅" if self.ok else "❌"
        reason = f", reason='{self.reason}'" if self.reason else ""
        slot = f", slot={self.slot}" if self.slot is not None else ""
        return f"OperationResult({status}{reason}{slot})"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the message-shaped response the router returns.

        Optional fields are omitted when unset, matching ``{ok, reason?, slot?}``.
        """
        payload: Dict[str, Any] = {"ok": self.ok}
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.slot is not None:
            payload["slot"] = self.slot
        payload.update(self.data)
        return payload

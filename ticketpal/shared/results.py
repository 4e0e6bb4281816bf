"""Tagged results returned by service operations instead of raising"""

from dataclasses import dataclass
from typing import Any, Optional

NOT_FOUND = "not_found"
CONFLICT = "conflict"
UPSTREAM = "upstream"
FAILED = "failed"

ERROR_STATUS_CODES = {
    NOT_FOUND: 404,
    CONFLICT: 409,
    UPSTREAM: 502,
    FAILED: 500,
}


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: str = FAILED) -> "ActionResult":
        return cls(success=False, error=error, code=code)

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return ERROR_STATUS_CODES.get(self.code, 500)

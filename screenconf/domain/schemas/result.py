"""
Typed outcome of engine operations that never raise for expected conditions.
"""

from dataclasses import dataclass
from typing import Optional

from screenconf.core.exceptions import ScreenConfigException


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    error: Optional[ScreenConfigException] = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: ScreenConfigException) -> "OperationResult":
        return cls(ok=False, error=error)

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def __bool__(self) -> bool:
        return self.ok

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class JobResult:
    """Result object for job operations."""
    job: Any
    bid: Optional[Any] = None
    escrow: Optional[Any] = None
    auto_hired: bool = False
    message: str = ""
    extra: Optional[Dict[str, Any]] = None

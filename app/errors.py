"""
Error types shared by the tracking engine, services and routes.
"""
from typing import Any, Dict, Optional


class ValidationError(ValueError):
    """Raised when caller-supplied data is malformed.

    Carries the name of the offending field so routes can report it back.
    """

    def __init__(self, field: Optional[str], message: str):
        super().__init__(f"{field}: {message}" if field else message)
        self.field = field
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "field": self.field}

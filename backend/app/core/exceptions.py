"""Domain exceptions raised by the inventory core.

Each class carries a machine-readable ``code`` and the HTTP status the API
layer answers with. The exception handler in ``app.main`` dispatches on the
class, never on the message text.
"""

from typing import Any, Dict, List, Optional


class InventoryError(Exception):
    """Base class for all inventory domain errors."""

    code = "inventory_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        """Additional machine-readable fields for the error payload."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "code": self.code}
        payload.update(self.extra())
        return payload


class NotFoundError(InventoryError):
    """Raised when a referenced plan or scan record does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")

    def extra(self) -> Dict[str, Any]:
        return {"entity": self.entity, "entity_id": self.entity_id}


class InvalidStateError(InventoryError):
    """Raised when an operation is not legal in the plan's current status."""

    code = "invalid_state"
    status_code = 400

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        required_status: Optional[List[str]] = None,
    ):
        self.current_status = current_status
        self.required_status = list(required_status or [])
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {
            "current_status": self.current_status,
            "required_status": self.required_status,
        }


class AlreadyScannedError(InventoryError):
    """Raised when a manual scan repeats a tag already matched in the plan."""

    code = "already_scanned"
    status_code = 400

    def __init__(self, asset_no: str, plan_id: int):
        self.asset_no = asset_no
        self.plan_id = plan_id
        super().__init__(
            f"Asset {asset_no} has already been scanned in plan {plan_id}; "
            f"use the record update endpoint to correct it"
        )

    def extra(self) -> Dict[str, Any]:
        return {"asset_no": self.asset_no, "plan_id": self.plan_id}


class ValidationError(InventoryError):
    """Raised when required fields are missing or inconsistent.

    ``errors`` is a list of ``{"field": ..., "message": ...}`` entries.
    """

    code = "validation_error"
    status_code = 422

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        fields = ", ".join(e["field"] for e in errors)
        super().__init__(f"Validation failed: {fields}")

    def extra(self) -> Dict[str, Any]:
        return {"errors": self.errors}

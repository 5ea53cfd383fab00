"""
Application-wide exception hierarchy.

Services raise these; the app factory registers one Flask error handler
per type so every blueprint gets the same HTTP status and body shape.

Usage:
    from pmassist.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Program", resource_id="1718000000000")
    raise ValidationError("Invalid status", details={"status": "Bogus"})
"""


class NotFoundError(Exception):
    """Raised when a requested program or board entity does not exist.

    Args:
        resource: Entity name (e.g. "Program", "Task").
        resource_id: The id that was looked up.
        program_id: Owning program, for board entities. Logged, not returned.

    Maps to HTTP 404.
    """

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        program_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.program_id = program_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if program_id is not None:
            msg += f" (program={program_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a domain rule.

    Closed-set violations (unknown status, priority, impact ...) and
    foreign-key mismatches land here. Missing required fields do NOT:
    those are soft no-ops by policy.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation.
        details: Optional field-level breakdown.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConfirmationRequiredError(Exception):
    """Raised when a destructive operation was not confirmed.

    Maps to HTTP 428.
    """

    def __init__(self, action: str, resource: str, resource_id: str | None = None) -> None:
        self.action = action
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"Confirmation required to {action} {resource} id={resource_id}")

class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler is called with invalid input or reaches an invalid state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class UnknownReferenceError(SchedulerError):
    """Raised when an assignment names a faculty member or subject that does not exist."""
    def __init__(self, kind: str, identifier: str):
        super().__init__(
            f"{kind.capitalize()} with ID {identifier} not found",
            details={"kind": kind, "id": identifier},
        )
        self.kind = kind
        self.identifier = identifier

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class GenerationError(AppError):
    """Raised when the planners cannot satisfy the constraints with the given assignments."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)

class InfeasibleLabPlacement(GenerationError):
    def __init__(self, subject_id: str, subject_name: str | None = None, reason: str | None = None):
        label = subject_name or subject_id
        message = f"Could not assign lab {label} due to constraints."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message, details={"subject_id": subject_id, "subject_name": subject_name})
        self.subject_id = subject_id

class IncompleteCoverage(GenerationError):
    def __init__(self, missing_slots: list[tuple[str, int]]):
        preview = ", ".join(f"{day} period {period}" for day, period in missing_slots[:10])
        if len(missing_slots) > 10:
            preview = f"{preview}, ..."
        super().__init__(
            f"Could not fill {len(missing_slots)} slot(s): {preview}",
            details={"missing_slots": [{"day": day, "period": period} for day, period in missing_slots]},
        )
        self.missing_slots = list(missing_slots)

class ExternalCollaboratorError(AppError):
    """Raised by the external candidate source; the engine always recovers from it."""
    def __init__(self, message: str):
        super().__init__(message, status_code=502)

"""Exception hierarchy for maintenance-event handlers."""


class MaintenanceError(Exception):
    """Base exception for maintenance-event handling errors."""


class SwisError(MaintenanceError):
    """SolarWinds Information Service request failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

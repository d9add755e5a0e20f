"""Domain errors raised by the scheduling and geofence services.

Routers let these propagate; the handler in main.py renders them as
``{"success": false, "error": code, "message": ...}``.
"""


class ScheduleError(Exception):
    code = "SCHEDULE_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ScheduleError):
    code = "NOT_FOUND"
    status_code = 404


class AlreadyPaused(ScheduleError):
    code = "ALREADY_PAUSED"


class NotPaused(ScheduleError):
    code = "NOT_PAUSED"


class CutoffExceeded(ScheduleError):
    code = "CUTOFF_EXCEEDED"


class InvalidTransition(ScheduleError):
    code = "INVALID_TRANSITION"


class InvalidInput(ScheduleError):
    code = "INVALID_INPUT"


class NoFranchiseAvailable(ScheduleError):
    code = "NO_FRANCHISE_AVAILABLE"
    status_code = 404

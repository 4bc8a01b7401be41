"""Custom exception classes for WeLabel Recorder."""


class WeLabelError(Exception):
    """Base exception for WeLabel Recorder errors."""

    def __init__(self, message: str, code: str = "internal", detail: str = ""):
        self.message = message
        self.code = code
        self.detail = detail
        super().__init__(message)


class RecordingPermissionError(WeLabelError):
    """A required OS capability (accessibility, screen recording) was not granted."""

    def __init__(self, missing: str):
        super().__init__(
            f"Recording requires {missing} permission",
            code="permission_denied",
            detail=missing,
        )


class StateError(WeLabelError):
    """Operation is invalid in the current recording/session state."""

    def __init__(self, message: str, code: str = "invalid_state"):
        super().__init__(message, code=code)


class AlreadyRecordingError(StateError):
    """A recording (or session) is already active."""

    def __init__(self, session_id: str = ""):
        message = "Recording already in progress"
        if session_id:
            message = f"{message}: {session_id}"
        super().__init__(message, code="already_recording")


class NotRecordingError(StateError):
    """Stop requested while nothing is recording."""

    def __init__(self):
        super().__init__("Not recording", code="not_recording")


class NoActiveSessionError(StateError):
    """No session is currently active."""

    def __init__(self):
        super().__init__("No active session", code="no_active_session")


class SessionAlreadyEndedError(StateError):
    """Session already has an end time."""

    def __init__(self, session_id: str):
        super().__init__(f"Session already ended: {session_id}", code="session_ended")


class SessionNotFoundError(WeLabelError):
    """Session not found."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", code="session_not_found")


class DecodeError(WeLabelError):
    """A persisted interaction or session record is malformed or of unknown type."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message, code="decode_failed", detail=detail)


class EncodeError(WeLabelError):
    """An interaction could not be serialized."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message, code="encode_failed", detail=detail)


class StorageError(WeLabelError):
    """Durable read/write or file copy failure."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message, code="storage_failed", detail=detail)


class CaptioningError(WeLabelError):
    """The optional captioning service failed or is not configured."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message, code="captioning_failed", detail=detail)

class PawLensError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class MalformedInput(PawLensError):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__('MALFORMED_INPUT', message, status_code=400, details=details)


class FetchError(PawLensError):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__('FETCH_FAILED', message, status_code=502, details=details)


class RemoteError(PawLensError):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__('REMOTE_ERROR', message, status_code=502, details=details)


class ConfigurationError(PawLensError):
    def __init__(self, message: str):
        super().__init__('CONFIGURATION_ERROR', message, status_code=500)


class InteractionBusy(PawLensError):
    def __init__(self, view: str):
        super().__init__('INTERACTION_BUSY', f'View {view!r} is already analyzing an input.', status_code=409)


class NotFound(PawLensError):
    def __init__(self, message: str):
        super().__init__('NOT_FOUND', message, status_code=404)

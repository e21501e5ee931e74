class SayHiError(Exception):
    """Base class for every failure the authentication helper reports."""


class DeviceNotFound(SayHiError):
    pass


class ConfigurationError(SayHiError):
    """Camera rejected the requested resolution / frame rate / pixel format."""

    def __init__(self, message: str, device_error: object = None):
        super().__init__(message)
        self.device_error = device_error


class CaptureError(SayHiError):
    pass


class DecodeError(SayHiError):
    pass


class PersistError(SayHiError):
    pass


class ProfileNotFound(SayHiError):
    pass


class InsufficientData(SayHiError):
    def __init__(self, collected: int, required: int):
        super().__init__(
            f"Insufficient frames captured ({collected}, minimum {required} required)"
        )
        self.collected = collected
        self.required = required


class Blocked(SayHiError):
    pass

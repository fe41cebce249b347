"""Error type shared by every service wrapper."""


class ServiceError(Exception):
    """An external operation failed. `message` is safe to show to the user."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

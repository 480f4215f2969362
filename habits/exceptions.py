class HabitStorageError(Exception):
    """Base class for habit storage failures raised by this package."""


class InitializationFailure(HabitStorageError):
    """The storage backend could not be opened or prepared."""


class BackendNotReady(HabitStorageError):
    """An operation found the backend handle missing."""

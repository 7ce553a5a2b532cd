"""
Domain error taxonomy.

Services raise these; ``homekeep.main`` maps them onto HTTP responses.
"""


class HomeKeepError(Exception):
    """Base class for every error raised by the tracker core."""


class StorageUnavailable(HomeKeepError):
    """The database could not be reached or an operation timed out."""


class NotFound(HomeKeepError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class TaskNotFound(NotFound):
    def __init__(self, task_id: str):
        super().__init__("Maintenance task", task_id)


class DuplicateKey(HomeKeepError):
    def __init__(self, collection: str, entity_id: str):
        super().__init__(f"{collection} already contains id {entity_id}")
        self.collection = collection
        self.entity_id = entity_id


class InvalidFrequencyUnit(HomeKeepError):
    def __init__(self, unit: object):
        super().__init__(f"Unrecognised frequency unit: {unit!r}")
        self.unit = unit


class CascadeDeleteIncomplete(HomeKeepError):
    """A multi-step delete stopped part way. Retrying the whole delete is safe."""

    def __init__(self, message: str, cause: BaseException):
        super().__init__(message)
        self.cause = cause


class NotificationDeliveryFailed(HomeKeepError):
    """A push channel could not deliver. Callers fall back to the toast inbox."""


class ProviderUnavailable(HomeKeepError):
    """An external provider (subscription, OCR) failed or returned an error."""

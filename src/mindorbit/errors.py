"""Exception hierarchy for MindOrbit."""


class MindOrbitError(Exception):
    """Base class for all MindOrbit errors."""


class MissingCredentialError(MindOrbitError):
    """The language model API key is not configured."""

    def __init__(self, message: str = "API key missing"):
        super().__init__(message)


class AnalysisError(MindOrbitError):
    """The analysis capability returned something unusable."""


class CaptureError(MindOrbitError):
    """User input could not be turned into a knowledge item."""


class StoreCorruptedError(MindOrbitError):
    """The persisted working set could not be parsed."""


class DuplicateItemError(MindOrbitError):
    """An item with the same id is already in the working set."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item already exists: {item_id}")

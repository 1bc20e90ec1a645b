from __future__ import annotations


class StoryboardError(Exception):
    """Base class for every error surfaced to the user."""


class ApiNotConfigured(StoryboardError):
    def __init__(self, message: str = "Gemini API key is not set") -> None:
        super().__init__(message)


class GenerationInProgress(StoryboardError):
    def __init__(self, label: str) -> None:
        super().__init__(f"another generation is already running: {label}")
        self.label = label


class GenerationFailed(StoryboardError):
    pass


class ImportRejected(StoryboardError):
    pass


class ImportParseError(StoryboardError):
    pass


class EntityNotFound(StoryboardError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class ConfirmationRequired(StoryboardError):
    pass


class InvalidImageData(StoryboardError):
    pass

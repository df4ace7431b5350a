"""
Error taxonomy for the costing engine.

Engine code raises these; routers translate them to HTTP responses at the
boundary. None of them is fatal to a wizard session.
"""

from typing import Optional


class CostingError(Exception):
    """Base class for every error raised by the costing engine."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationRejected(CostingError):
    """A step's input failed validation. The wizard state is unchanged."""

    def __init__(self, message: str, step_index: Optional[int] = None):
        super().__init__(message)
        self.step_index = step_index


class PersistenceFailure(CostingError):
    """A draft or record read/write failed."""


class MalformedImport(CostingError):
    """A backup file failed shape checks. Nothing was imported."""


class ImageCodecError(CostingError):
    """Raw photo bytes could not be decoded or re-encoded."""


class WizardStateError(CostingError):
    """An operation is not allowed in the wizard's current state."""


class WizardClosed(WizardStateError):
    """The wizard has committed or been discarded and must be started again."""

    def __init__(self, message: str = "No costing wizard is open. Start a new costing first."):
        super().__init__(message)

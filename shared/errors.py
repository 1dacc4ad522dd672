"""Error hierarchy for parameter resolution.

Only hard failures are exceptions. A user cancelling a prompt or a required
slot left empty is expressed through the shape of the result map, never raised.
"""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for failures that reject a whole resolution call."""


class ConfigurationError(ResolutionError):
    """Raised for a broken schema or wiring: unknown handler type, unregistered
    value supplier, missing collaborator, unknown slot name."""


class ExternalServiceError(ResolutionError):
    """Raised when the NLP / named-entity backend fails or answers garbage."""


class ConversationError(ResolutionError):
    """Raised by a conversation gateway that cannot deliver a reply."""

"""
Error taxonomy for the chat/case pipeline.

UserInputError subclasses are safe to show verbatim to the caller.
UpstreamUnavailable covers transient failures of the generation and embedding
services; UpstreamRejected covers configuration-level rejections that should
alert operators. Routes translate these into HTTP responses.
"""


class SupportBotError(Exception):
    """Base class for all support bot errors."""


# --- Caller input ---

class UserInputError(SupportBotError):
    """The request itself is invalid; surfaced verbatim, never retried."""


class NoProductSelected(UserInputError):
    def __init__(self, message: str = "Please select a product first"):
        super().__init__(message)


class InvalidOrderOrProduct(UserInputError):
    def __init__(self, message: str = "Invalid order or product"):
        super().__init__(message)


class EmptyMessage(UserInputError):
    def __init__(self, message: str = "Message must not be empty"):
        super().__init__(message)


# --- Upstream services ---

class UpstreamUnavailable(SupportBotError):
    """An upstream service could not produce a result right now."""


class AllModelsExhausted(UpstreamUnavailable):
    def __init__(self, models=None):
        self.models = list(models or [])
        super().__init__("All text generation models exhausted or failed")


class EmbeddingUnavailable(UpstreamUnavailable):
    """The embedding service failed; callers treat this as 'no FAQ match'."""


class UpstreamRejected(SupportBotError):
    """The upstream service refused the call; not user-actionable."""


class InvalidGenerationRequest(UpstreamRejected):
    """The generation service rejected the prompt as malformed."""


class GenerationAuthenticationFailed(UpstreamRejected):
    """The generation service rejected our credentials."""


class GenerationError(SupportBotError):
    """Any other generation failure; carries the upstream message."""


class GenerationFailed(SupportBotError):
    """Raised by the orchestrator when a chat turn could not be answered."""

    def __init__(self, message: str = "Chat failed"):
        super().__init__(message)


# --- Persistence ---

class PersistenceConflict(SupportBotError):
    """A case upsert kept colliding with a concurrent writer."""

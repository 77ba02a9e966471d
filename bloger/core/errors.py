"""
Error taxonomy for Bloger.
"""
from dataclasses import dataclass
from enum import Enum


class BlogerError(Exception):
    """Base class for all Bloger failures."""


class GenerationFailure(BlogerError):
    """
    The generative service call failed: transport error, empty response or
    a payload that does not parse as the requested structure.

    ``credential`` is set when the service rejected the configured API key,
    which needs re-authentication rather than a retry.
    """
    def __init__(self, message: str, credential: bool = False):
        super().__init__(message)
        self.credential = credential


class NoImageProduced(BlogerError):
    """The service responded but returned no image part."""


class SuggestionParseFailure(BlogerError):
    """No usable topic array could be recovered from a suggestion response."""


class DecodeFailure(BlogerError):
    """A share token is malformed or does not carry an article."""


class StorageQuotaExceeded(BlogerError):
    """A slot write would exceed the storage quota."""


class InvalidTransition(BlogerError):
    """A session operation was requested from a state that does not allow it."""


class ErrorKind(Enum):
    CREDENTIALS = "credentials"
    GENERATION = "generation"
    NO_IMAGE = "no_image"


@dataclass(frozen=True)
class SessionError:
    """A failure recorded on the session for display."""
    kind: ErrorKind
    message: str


CREDENTIALS_MESSAGE = (
    "The AI service rejected the configured credentials. "
    "Check your OPENAI_API_KEY and try again."
)
GENERATION_MESSAGE = "The muse has left the building (API error). Please try again in a moment."
CONTINUATION_MESSAGE = "Could not extend the article. The existing text was kept; please try again."
IMAGE_MESSAGE = "Could not generate the image. Please try again."


def classify(exc: BaseException, generic_message: str = GENERATION_MESSAGE) -> SessionError:
    """
    Turn a failure into a displayable SessionError, keeping credential
    problems apart from everything else.
    """
    if isinstance(exc, GenerationFailure) and exc.credential:
        return SessionError(ErrorKind.CREDENTIALS, CREDENTIALS_MESSAGE)
    if isinstance(exc, NoImageProduced):
        return SessionError(ErrorKind.NO_IMAGE, IMAGE_MESSAGE)
    return SessionError(ErrorKind.GENERATION, generic_message)

"""
Article session: the state machine that owns the live article.

States: IDLE -> GENERATING -> READY <-> EXTENDING. Every request is tagged
with the generation sequence current when it started; a response arriving
after a newer generation (or a share-link load) began is discarded.
"""
import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from bloger.core import codec
from bloger.core.article import Article, HistoryEntry, SharePayload, SuggestionResult
from bloger.core.cache import HistoryCache
from bloger.core.errors import (
    CONTINUATION_MESSAGE,
    DecodeFailure,
    GenerationFailure,
    InvalidTransition,
    NoImageProduced,
    SessionError,
    classify,
)
from bloger.services.generation import GenerationClient

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 5


class SessionState(Enum):
    IDLE = "idle"
    GENERATING = "generating"
    READY = "ready"
    EXTENDING = "extending"


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot of the session for presentation."""
    state: SessionState
    article: Optional[Article]
    category: str
    logo: Optional[str]
    error: Optional[SessionError]
    image_error: Optional[SessionError]
    generating_image: bool


class ArticleSession:
    """
    Drives generation and extension of one article at a time.

    Collaborators are passed in: the generation client, the optional history
    cache, and the share token budget.
    """
    def __init__(self, client: GenerationClient, history: Optional[HistoryCache] = None,
                 share_budget: int = codec.TOKEN_BUDGET):
        self.client = client
        self.history = history
        self.share_budget = share_budget
        self.state = SessionState.IDLE
        self.article: Optional[Article] = None
        self.category = ""
        self.logo: Optional[str] = None
        self.error: Optional[SessionError] = None
        self.image_error: Optional[SessionError] = None
        self._sequence = 0
        self._images_in_flight = 0

    def _require(self, *states: SessionState):
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(f"Operation needs state {allowed}, session is {self.state.value}")

    def _remember(self):
        if self.history is None or self.article is None:
            return
        self.history.record_if_absent(
            copy.deepcopy(self.article), self.category, self.article.generated_image_url
        )

    def view(self) -> SessionView:
        return SessionView(
            state=self.state,
            article=copy.deepcopy(self.article),
            category=self.category,
            logo=self.logo,
            error=self.error,
            image_error=self.image_error,
            generating_image=self._images_in_flight > 0,
        )

    def set_logo(self, logo: Optional[str]):
        self.logo = logo or None

    async def start_generation(self, topic: str, category: str, length: str) -> bool:
        """
        Generate a new article, replacing the current one.

        Allowed from IDLE and READY, and from GENERATING, where the new
        request supersedes the one in flight.

        Returns:
            True if the article was installed
        """
        if not topic or not topic.strip():
            raise ValueError("Topic must not be empty")
        self._require(SessionState.IDLE, SessionState.READY, SessionState.GENERATING)

        self._sequence += 1
        sequence = self._sequence
        self.state = SessionState.GENERATING
        self.article = None
        self.error = None
        self.image_error = None
        self.category = getattr(category, "value", category)

        try:
            article = await self.client.generate_article(topic.strip(), category, length)
        except GenerationFailure as e:
            if sequence != self._sequence:
                logger.debug("Discarding failure of a superseded generation")
                return False
            self.error = classify(e)
            self.state = SessionState.IDLE
            return False
        except BaseException:
            # Never leave the session stuck in GENERATING
            if sequence == self._sequence:
                self.state = SessionState.IDLE
            raise

        if sequence != self._sequence:
            logger.info(f"Discarding stale article '{article.title}'")
            return False

        self.article = article
        self.state = SessionState.READY
        self._remember()
        return True

    async def request_continuation(self) -> bool:
        """
        Append more body text to the current article.

        On failure the existing body is kept and a non-fatal error is set.

        Returns:
            True if text was appended
        """
        self._require(SessionState.READY)

        sequence = self._sequence
        article = self.article
        self.state = SessionState.EXTENDING
        self.error = None

        try:
            text = await self.client.continue_article(article.title, article.body[-500:])
        except GenerationFailure as e:
            if sequence == self._sequence:
                self.error = classify(e, CONTINUATION_MESSAGE)
                self.state = SessionState.READY
            return False
        except BaseException:
            if sequence == self._sequence:
                self.state = SessionState.READY
            raise

        if sequence != self._sequence:
            logger.info("Discarding continuation for a replaced article")
            return False

        article.body = article.body + "\n\n" + text
        self.state = SessionState.READY
        return True

    async def request_cover_image(self) -> bool:
        """
        Generate (or regenerate) the cover image from the article's image prompt.

        May run while a continuation is in flight. A failure keeps the
        previous image.

        Returns:
            True if the image was replaced
        """
        self._require(SessionState.READY, SessionState.EXTENDING)
        if not self.article.image_prompt:
            raise InvalidTransition("Article has no image prompt")

        sequence = self._sequence
        article = self.article
        self.image_error = None
        self._images_in_flight += 1
        try:
            image_url = await self.client.generate_image(article.image_prompt)
        except (GenerationFailure, NoImageProduced) as e:
            if sequence == self._sequence:
                self.image_error = classify(e)
            return False
        finally:
            self._images_in_flight -= 1

        if sequence != self._sequence:
            logger.info("Discarding cover image for a replaced article")
            return False

        article.generated_image_url = image_url
        if self.history is not None:
            self.history.update_thumbnail(article.title, image_url)
        return True

    def load_from_share_token(self, token: str) -> bool:
        """
        Replace the whole session with a shared article.

        A malformed token is logged and ignored, leaving the session as it was.

        Returns:
            True if the shared article was loaded
        """
        try:
            payload = codec.decode(token)
        except DecodeFailure as e:
            logger.warning(f"Ignoring share token: {e}")
            return False

        self._sequence += 1
        self.article = payload.article
        self.category = payload.category
        self.logo = payload.logo
        self.error = None
        self.image_error = None
        self.state = SessionState.READY
        self._remember()
        return True

    def load_from_fragment(self, fragment: str) -> bool:
        """Handle a URL fragment or full URL, loading it if it is a share link."""
        token = codec.token_from_fragment(fragment)
        if token is None:
            return False
        return self.load_from_share_token(token)

    def share_token(self) -> str:
        self._require(SessionState.READY)
        payload = SharePayload(
            article=copy.deepcopy(self.article), category=self.category, logo=self.logo
        )
        return codec.encode(payload, budget=self.share_budget)

    def share_url(self, base_url: str) -> str:
        return codec.share_url(base_url, self.share_token())

    def export(self, exporter: Callable[[Article, str, Optional[str]], Any]) -> Any:
        """Hand a copy of the finished article to a document exporter."""
        self._require(SessionState.READY)
        return exporter(copy.deepcopy(self.article), self.category, self.logo)

    async def suggest_topics(self, category: str, time_range: str) -> SuggestionResult:
        result = await self.client.suggest_topics(category, time_range)
        result.topics = result.topics[:SUGGESTION_LIMIT]
        return result

    def recent_articles(self) -> List[HistoryEntry]:
        if self.history is None:
            return []
        return self.history.list(excluding_title=self.article.title if self.article else None)

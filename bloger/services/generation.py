"""
Generative AI client for Bloger.

Wraps the OpenAI Responses API for the four calls the workshop needs:
structured article generation, free-text continuation, cover images and
web-grounded topic suggestions.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import async_timeout
import backoff
import openai
from openai import AsyncOpenAI

from bloger.config import get_config
from bloger.core.article import (
    Article,
    GroundingSource,
    SuggestionResult,
    TopicSuggestion,
)
from bloger.core.errors import GenerationFailure, NoImageProduced, SuggestionParseFailure
from bloger.core.extract import extract_json_array, extract_json_object

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 500

# Errors worth retrying for continuation and image calls
RETRYABLE_ERRORS = (openai.RateLimitError, openai.APIConnectionError)

ARTICLE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "introduction": {"type": "string"},
        "body": {"type": "string"},
        "conclusion": {"type": "string"},
        "imagePrompt": {"type": "string"},
        "chart": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "type": {"type": "string", "enum": ["bar", "pie", "line"]},
                "data": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "value": {"type": "number"},
                        },
                    },
                },
            },
        },
        "sponsoredLink": {
            "type": "object",
            "properties": {
                "anchor": {"type": "string"},
                "url": {"type": "string"},
                "description": {"type": "string"},
            },
        },
    },
    "required": ["title", "introduction", "body", "conclusion", "imagePrompt"],
}

ARTICLE_PROMPT = (
    "You are an award-winning blogger. Write a blog post about: {topic} "
    "(category: {category}, about {length}). Use Markdown, the AIDA structure and "
    "plenty of emoji. The introduction grabs Attention, the body builds Interest and "
    "Desire, the conclusion is a call to Action. imagePrompt describes a cover "
    "illustration for the post. Add a chart with illustrative data and a sponsored "
    "link when they fit the topic. Write in {language}."
)

CONTINUE_PROMPT = (
    'Continue the article "{title}". Context: {context}. '
    "Markdown, emoji. Return only the new text. Write in {language}."
)

TRENDS_PROMPT = (
    'Search for current trends ({range}) in the category "{category}". '
    'Return {count} topics as JSON: [{{"title": "...", "description": "..."}}]. '
    "Write in {language}."
)

EVERGREEN_PROMPT = (
    'Suggest {count} evergreen blog topics for: {category}. '
    'Return JSON: [{{"title": "...", "description": "..."}}]. Write in {language}.'
)


def _is_credential_error(exc: BaseException) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return getattr(exc, "status_code", None) in (401, 403)


def _output_text(response: Any) -> str:
    """
    Text of a response, read from ``output_text`` or assembled from the
    output message parts.
    """
    text = getattr(response, "output_text", None)
    if text:
        return text

    chunks = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            part_text = getattr(part, "text", None)
            if part_text:
                chunks.append(part_text)
    return "".join(chunks)


def _grounding_sources(response: Any) -> List[GroundingSource]:
    """Collect url citations attached to the response text."""
    sources = []
    seen = set()
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            for annotation in getattr(part, "annotations", None) or []:
                if getattr(annotation, "type", None) != "url_citation":
                    continue
                uri = getattr(annotation, "url", None)
                if not uri or uri in seen:
                    continue
                seen.add(uri)
                sources.append(GroundingSource(title=getattr(annotation, "title", None) or "Source", uri=uri))
    return sources


def _parse_topics(raw: str) -> List[TopicSuggestion]:
    """
    Recover topic suggestions from free text. Entries without a title or
    description are skipped.

    Raises:
        SuggestionParseFailure: if no array is found or no entry is usable
    """
    items = extract_json_array(raw)
    topics = []
    for item in items:
        title = item.get("title") if isinstance(item, dict) else None
        description = item.get("description") if isinstance(item, dict) else None
        if not isinstance(title, str) or not title.strip() or not isinstance(description, str):
            logger.warning(f"Skipping malformed topic suggestion: {item!r}")
            continue
        topics.append(TopicSuggestion(title=title.strip(), description=description.strip()))
    if not topics:
        raise SuggestionParseFailure("Suggestion array had no usable entries")
    return topics


class GenerationClient:
    """
    Client for the generative text and image service.
    """
    def __init__(self, client: Optional[AsyncOpenAI] = None,
                 timeout: Optional[float] = None,
                 retry_tries: Optional[int] = None):
        """
        Initialize the GenerationClient.

        Args:
            client: OpenAI client to use; one is created from the environment if omitted
            timeout: Per-request timeout in seconds
            retry_tries: Attempts for continuation and image calls
        """
        self._client = client
        self.timeout = timeout if timeout is not None else get_config('openai.timeout_seconds', 120)
        self.retry_tries = retry_tries if retry_tries is not None else get_config('openai.retry_tries', 3)
        self.text_model = get_config('openai.text_model')
        self.suggestion_model = get_config('openai.suggestion_model')
        self.image_model = get_config('openai.image_model')
        self.language = get_config('generation.language', 'English')
        self.suggestion_count = get_config('generation.suggestion_count', 6)
        self.image_size = get_config('image.size', '1536x1024')
        self.image_format = get_config('image.output_format', 'png')

    @property
    def client(self) -> AsyncOpenAI:
        """
        Lazy initialization of the OpenAI client.

        Returns:
            AsyncOpenAI: The API client
        """
        if self._client is None:
            # Retries are decided per call below
            self._client = AsyncOpenAI(max_retries=0)
        return self._client

    async def _create(self, **kwargs) -> Any:
        """Single Responses API call bounded by the request timeout."""
        async with async_timeout.timeout(self.timeout):
            return await self.client.responses.create(**kwargs)

    async def _create_with_retries(self, **kwargs) -> Any:
        call = backoff.on_exception(
            backoff.expo,
            RETRYABLE_ERRORS,
            max_tries=self.retry_tries,
            logger=logger,
        )(self._create)
        return await call(**kwargs)

    def _failure(self, what: str, exc: BaseException) -> GenerationFailure:
        logger.error(f"{what} failed: {exc!r}")
        return GenerationFailure(f"{what} failed: {exc}", credential=_is_credential_error(exc))

    async def generate_article(self, topic: str, category: str, length: str) -> Article:
        """
        Generate a complete article as structured output.

        Not retried: a failure goes back to the caller.

        Args:
            topic: What the article is about
            category: Category label
            length: Target length label (e.g. "1000 words")

        Returns:
            The generated Article

        Raises:
            GenerationFailure: on transport errors, empty or unparseable output
        """
        prompt = ARTICLE_PROMPT.format(
            topic=topic, category=getattr(category, "value", category),
            length=getattr(length, "value", length), language=self.language,
        )
        try:
            response = await self._create(
                model=self.text_model,
                input=prompt,
                text={
                    "format": {
                        "type": "json_schema",
                        "name": "blog_article",
                        "schema": ARTICLE_SCHEMA,
                        "strict": False,
                    }
                },
            )
        except (openai.OpenAIError, asyncio.TimeoutError) as e:
            raise self._failure("Article generation", e) from e

        raw = _output_text(response)
        try:
            article = Article.from_dict(extract_json_object(raw))
        except ValueError as e:
            logger.error(f"Unusable article payload: {e}")
            raise GenerationFailure(f"Article response could not be parsed: {e}") from e

        logger.info(f"Generated article '{article.title}'")
        return article

    async def continue_article(self, title: str, recent_context: str) -> str:
        """
        Write more body text for an article.

        Args:
            title: Article title
            recent_context: Tail of the current body; only the last 500 characters are sent

        Returns:
            The new text, or "" if the service returned nothing

        Raises:
            GenerationFailure: on transport errors
        """
        prompt = CONTINUE_PROMPT.format(
            title=title, context=recent_context[-CONTEXT_CHARS:], language=self.language,
        )
        try:
            response = await self._create_with_retries(model=self.text_model, input=prompt)
        except (openai.OpenAIError, asyncio.TimeoutError) as e:
            raise self._failure("Continuation", e) from e

        return _output_text(response) or ""

    async def generate_image(self, prompt: str) -> str:
        """
        Generate a cover image in the configured landscape size.

        Args:
            prompt: Image description

        Returns:
            The image as a base64 data URI

        Raises:
            NoImageProduced: if the response holds no image part
            GenerationFailure: on transport errors
        """
        try:
            response = await self._create_with_retries(
                model=self.image_model,
                input=prompt,
                tools=[{
                    "type": "image_generation",
                    "size": self.image_size,
                    "output_format": self.image_format,
                }],
                tool_choice={"type": "image_generation"},
            )
        except (openai.OpenAIError, asyncio.TimeoutError) as e:
            raise self._failure("Image generation", e) from e

        for item in getattr(response, "output", None) or []:
            if getattr(item, "type", None) != "image_generation_call":
                continue
            data = getattr(item, "result", None)
            if data:
                return f"data:image/{self.image_format};base64,{data}"

        logger.warning("Image response contained no image data")
        raise NoImageProduced("No image data in response")

    async def suggest_topics(self, category: str, time_range: str) -> SuggestionResult:
        """
        Suggest trending topics using web search, falling back once to
        evergreen topics without search if the grounded request fails.

        A response without a usable JSON array yields an empty result with
        ``failure`` set rather than an exception.

        Raises:
            GenerationFailure: if the fallback request fails as well
        """
        category = getattr(category, "value", category)
        time_range = getattr(time_range, "value", time_range)
        sources: List[GroundingSource] = []

        try:
            response = await self._create(
                model=self.suggestion_model,
                input=TRENDS_PROMPT.format(
                    range=time_range, category=category,
                    count=self.suggestion_count, language=self.language,
                ),
                tools=[{"type": "web_search"}],
            )
            sources = _grounding_sources(response)
        except (openai.OpenAIError, asyncio.TimeoutError) as e:
            logger.warning(f"Grounded suggestions failed, trying evergreen fallback: {e!r}")
            try:
                response = await self._create(
                    model=self.suggestion_model,
                    input=EVERGREEN_PROMPT.format(
                        category=category, count=self.suggestion_count, language=self.language,
                    ),
                )
            except (openai.OpenAIError, asyncio.TimeoutError) as fallback_error:
                raise self._failure("Topic suggestion", fallback_error) from fallback_error

        raw = _output_text(response)
        try:
            topics = _parse_topics(raw)
        except SuggestionParseFailure as e:
            logger.warning(f"Could not parse topic suggestions: {e}; raw={json.dumps(raw[:200])}")
            return SuggestionResult(topics=[], sources=sources, failure=e)

        return SuggestionResult(topics=topics, sources=sources)

"""
Share-link encoding for Bloger.

A share token is the UTF-8 JSON of a SharePayload, base64-encoded so it can
sit in a URL fragment (``#share=<token>``).
"""
import base64
import binascii
import json
import logging
from typing import Optional
from urllib.parse import unquote, urlparse

from bloger.core.article import Article, SharePayload
from bloger.core.errors import DecodeFailure

logger = logging.getLogger(__name__)

TOKEN_BUDGET = 30000
FRAGMENT_PREFIX = "share="


def _encode(payload: SharePayload, include_logo: bool) -> str:
    data = {
        "article": payload.article.to_dict(),
        "category": payload.category,
        "logo": payload.logo if include_logo else None,
    }
    # Multi-byte text must become UTF-8 bytes before the base64 step
    raw = json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def encode(payload: SharePayload, budget: int = TOKEN_BUDGET) -> str:
    """
    Encode a share payload into a URL-safe token.

    If the token is over ``budget`` characters and a logo is attached, the
    payload is encoded again without the logo. A token that is still too
    long is returned as-is.

    Args:
        payload: The article, category and optional logo to share
        budget: Maximum token length before the logo is dropped

    Returns:
        The share token
    """
    token = _encode(payload, include_logo=True)
    if len(token) > budget and payload.logo:
        logger.warning(
            f"Share token is {len(token)} characters (budget {budget}); "
            "leaving the logo out of the link"
        )
        token = _encode(payload, include_logo=False)
    if len(token) > budget:
        logger.warning(f"Share token still exceeds the budget ({len(token)} > {budget})")
    return token


def decode(token: str) -> SharePayload:
    """
    Decode a share token back into a SharePayload.

    Tokens produced by the web app (``data`` instead of ``article``) are
    accepted as well.

    Raises:
        DecodeFailure: on invalid base64, non-JSON content or a missing or
            invalid article
    """
    token = unquote((token or "").strip())
    if not token:
        raise DecodeFailure("Empty share token")

    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.b64decode(padded, validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError) as e:
        raise DecodeFailure(f"Malformed share token: {e}") from e

    if not isinstance(data, dict):
        raise DecodeFailure("Share payload is not an object")

    article_data = data.get("article", data.get("data"))
    if article_data is None:
        raise DecodeFailure("Share payload has no article")

    try:
        article = Article.from_dict(article_data)
    except ValueError as e:
        raise DecodeFailure(f"Shared article is invalid: {e}") from e

    category = data.get("category")
    logo = data.get("logo")
    return SharePayload(
        article=article,
        category=category if isinstance(category, str) else "",
        logo=logo if isinstance(logo, str) and logo else None,
    )


def token_from_fragment(fragment: str) -> Optional[str]:
    """
    Pull the share token out of a URL fragment or a full URL.

    Returns:
        The token, or None if the fragment is not a share link
    """
    if not fragment:
        return None
    if "://" in fragment:
        fragment = urlparse(fragment).fragment
    fragment = fragment.lstrip("#")
    if not fragment.startswith(FRAGMENT_PREFIX):
        return None
    return fragment[len(FRAGMENT_PREFIX):]


def share_url(base_url: str, token: str) -> str:
    """Build the shareable URL for a token."""
    return f"{base_url.split('#', 1)[0]}#{FRAGMENT_PREFIX}{token}"

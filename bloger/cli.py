"""
Command-line interface for Bloger.
"""
import sys
import base64
import argparse
import logging
import asyncio
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from bloger.config import get_config
from bloger.core.article import Category, TimeRange, WordCount
from bloger.core.cache import HistoryCache, SlotStore
from bloger.core.errors import GenerationFailure, classify
from bloger.core.session import ArticleSession
from bloger.formatters.html import HtmlConverter
from bloger.services.generation import GenerationClient

logger = logging.getLogger(__name__)


def setup_logging():
    """
    Configure logging to the console and, if configured, a dated log file.
    """
    handlers = [logging.StreamHandler()]
    log_file = get_config('logging.file')
    if log_file:
        handlers.append(logging.FileHandler(log_file.replace('{date}', datetime.now().strftime('%Y%m%d'))))
    logging.basicConfig(
        level=getattr(logging, str(get_config('logging.level', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def _enum_choice(enum_cls):
    def parse(value: str):
        for member in enum_cls:
            if value.lower() in (member.name.lower(), member.value.lower()):
                return member
        raise argparse.ArgumentTypeError(f"invalid choice: {value}")
    return parse


def parse_args(argv=None):
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Bloger - AI Article Workshop")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a new article")
    generate.add_argument("topic", help="What the article is about")
    generate.add_argument("--category", type=_enum_choice(Category), default=Category.HEALTH)
    generate.add_argument("--length", type=_enum_choice(WordCount), default=WordCount.LONG)
    generate.add_argument("--more", type=int, default=0, help="Number of continuation rounds")
    generate.add_argument("--image", action="store_true", help="Generate a cover image")
    generate.add_argument("--logo", help="Path to a logo image")
    generate.add_argument("--output-dir", help="Output directory", default="output")
    generate.add_argument("--share", action="store_true", help="Print a share link")

    suggest = subparsers.add_parser("suggest", help="Suggest trending topics")
    suggest.add_argument("--category", type=_enum_choice(Category), default=Category.HEALTH)
    suggest.add_argument("--range", type=_enum_choice(TimeRange), default=TimeRange.WEEK)

    open_ = subparsers.add_parser("open", help="Open a shared article link or token")
    open_.add_argument("link", help="Share URL, '#share=' fragment or bare token")
    open_.add_argument("--output-dir", help="Output directory", default="output")

    subparsers.add_parser("history", help="List recently generated articles")

    return parser.parse_args(argv)


def build_session() -> ArticleSession:
    store = SlotStore(
        get_config('history.database', 'cache/bloger_history.db'),
        quota_bytes=get_config('history.quota_bytes', 5 * 1024 * 1024),
    )
    history = HistoryCache(
        store,
        slot=get_config('history.slot', 'bloger_history'),
        max_entries=get_config('history.max_entries', 3),
    )
    return ArticleSession(
        GenerationClient(),
        history=history,
        share_budget=get_config('share.token_budget', 30000),
    )


def read_logo(path: str) -> Optional[str]:
    """Read an image file as a data URI."""
    mime = mimetypes.guess_type(path)[0] or "image/png"
    data = Path(path).read_bytes()
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def export(session: ArticleSession, output_dir: str):
    converter = HtmlConverter()
    paths = session.export(
        lambda article, category, logo: converter.export_article(article, category, logo, output_dir)
    )
    for name, path in paths.items():
        print(f"{name}: {path}")


async def run_generate(args) -> int:
    session = build_session()
    if args.logo:
        session.set_logo(read_logo(args.logo))

    logger.info(f"Generating article about '{args.topic}'")
    if not await session.start_generation(args.topic, args.category, args.length):
        print(session.error.message, file=sys.stderr)
        return 1

    for i in range(args.more):
        if not await session.request_continuation():
            print(session.error.message, file=sys.stderr)
            break
        logger.info(f"Extended article ({i + 1}/{args.more})")

    if args.image and not await session.request_cover_image():
        print(session.image_error.message, file=sys.stderr)

    export(session, args.output_dir)

    if args.share:
        print(session.share_url(get_config('share.base_url', 'http://localhost:3000/')))

    others = session.recent_articles()
    if others:
        print("Recent articles:")
        for entry in others:
            print(f"  {entry.date}  {entry.title} ({entry.category})")
    return 0


async def run_suggest(args) -> int:
    session = build_session()
    try:
        result = await session.suggest_topics(args.category, args.range)
    except GenerationFailure as e:
        print(classify(e).message, file=sys.stderr)
        return 1
    if result.failure is not None or not result.topics:
        print("No topics found. Please try again later.", file=sys.stderr)
        return 1

    for topic in result.topics:
        print(f"- {topic.title}: {topic.description}")
    if result.sources:
        print("Sources:")
        for source in result.sources:
            print(f"  {source.title} <{source.uri}>")
    return 0


def run_open(args) -> int:
    session = build_session()
    loaded = session.load_from_fragment(args.link) or session.load_from_share_token(args.link)
    if not loaded:
        print("This link does not contain a readable article.", file=sys.stderr)
        return 1
    export(session, args.output_dir)
    return 0


def run_history(args) -> int:
    session = build_session()
    entries = session.recent_articles()
    if not entries:
        print("No articles yet.")
    for entry in entries:
        thumb = " [image]" if entry.thumbnail else ""
        print(f"{entry.date}  {entry.title} ({entry.category}){thumb}")
    return 0


async def async_main(argv=None) -> int:
    """
    Main entry point for the application.
    """
    # Explicitly reload environment variables from .env file
    load_dotenv(override=True)
    args = parse_args(argv)

    if args.command == "generate":
        return await run_generate(args)
    if args.command == "suggest":
        return await run_suggest(args)
    if args.command == "open":
        return run_open(args)
    return run_history(args)


def main(argv=None):
    """
    Entry point for the command-line script.
    """
    setup_logging()
    try:
        return asyncio.run(async_main(argv))
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"An error occurred: {e}")
        return 1

if __name__ == "__main__":
    sys.exit(main())

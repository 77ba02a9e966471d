"""
Markdown formatting utilities for Bloger.
"""
import random
from datetime import datetime
from typing import Dict, List, Optional

from bloger.core.article import Article, Category
import logging

# Configure logging
logger = logging.getLogger(__name__)

CATEGORY_TAGS: Dict[str, List[str]] = {
    Category.HEALTH.value: ['Health', 'Medicine', 'Wellness', 'Prevention', 'Body', 'Mind'],
    Category.TECHNOLOGY.value: ['Tech', 'Innovation', 'Gadgets', 'Future', 'Digital', 'Software'],
    Category.AI.value: ['ArtificialIntelligence', 'MachineLearning', 'LLM', 'Automation', 'Robotics'],
    Category.FINANCE.value: ['Money', 'Investing', 'Saving', 'Budget', 'StockMarket', 'Economy'],
    Category.MARKETING.value: ['SEO', 'SocialMedia', 'Branding', 'Sales', 'Content', 'Strategy'],
    'default': ['Blog', 'Knowledge', 'Inspiration', 'Tips', 'Lifestyle', 'Education'],
}


def pick_tags(category: str, rng: Optional[random.Random] = None) -> List[str]:
    """
    Pick 3 to 5 hashtags for a category, falling back to the default pool.

    Args:
        category: Category label
        rng: Random source, for reproducible picks

    Returns:
        List of tags without the leading '#'
    """
    rng = rng or random.Random()
    pool = CATEGORY_TAGS.get(category, CATEGORY_TAGS['default'])
    count = rng.randint(3, 5)
    return rng.sample(pool, min(count, len(pool)))


class MarkdownFormatter:
    """
    Formats an article into Markdown content.
    """
    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the MarkdownFormatter.

        Args:
            rng: Random source used for tag selection
        """
        self.today = datetime.now().strftime("%B %d, %Y")
        self.rng = rng

    def _format_chart(self, article: Article) -> str:
        chart = article.chart
        lines = [
            f"**Chart ({chart.kind.value}): {chart.title}**",
            "",
            "| | |",
            "|---|---:|",
        ]
        for point in chart.points:
            lines.append(f"| {point.name} | {point.value:g} |")
        return "\n".join(lines)

    def format_article(self, article: Article, category: str, logo: Optional[str] = None) -> str:
        """
        Render the article as a Markdown document.

        Args:
            article: The article to render
            category: Category label shown in the metadata line
            logo: Optional logo data URI placed above the title

        Returns:
            Markdown text
        """
        parts = []
        if logo:
            parts.append(f"![logo]({logo})")
        parts.append(f"# {article.title}")

        tags = " ".join(f"#{tag}" for tag in pick_tags(category, self.rng))
        parts.append(f"*{category} • {self.today}*  \n{tags}")

        if article.generated_image_url:
            parts.append(f"![{article.title}]({article.generated_image_url})")

        parts.append(article.introduction)
        parts.append(article.body)

        if article.chart is not None and article.chart.points:
            parts.append(self._format_chart(article))

        parts.append(f"> {article.conclusion}")

        if article.sponsored_link is not None:
            link = article.sponsored_link
            parts.append(f"**[{link.anchor}]({link.url})** - {link.description}")

        logger.debug(f"Formatted '{article.title}' as Markdown")
        return "\n\n".join(parts) + "\n"

"""
Article data model for Bloger.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "introduction", "body", "conclusion", "imagePrompt")


class Category(str, Enum):
    HEALTH = "Health"
    PSYCHOLOGY = "Psychology"
    TECHNOLOGY = "Technology"
    AI = "Artificial Intelligence"
    GUIDE = "Guide"
    FINANCE = "Finance"
    TRAVEL = "Travel"
    CULINARY = "Culinary"
    LIFESTYLE = "Lifestyle"
    DIY = "DIY"
    PARENTING = "Parenting"
    BUSINESS = "Business"
    MARKETING = "Marketing"
    SPORT = "Sport"
    BEAUTY = "Beauty"
    GARDENING = "Gardening"
    INTERIOR_DESIGN = "Interior Design"
    HISTORY = "History"
    GAMING = "Gaming"
    AUTOMOTIVE = "Automotive"


class WordCount(str, Enum):
    SHORT = "500 words"
    MEDIUM = "1000 words"
    LONG = "2000 words"
    EPIC = "3000 words"


class TimeRange(str, Enum):
    WEEK = "last 7 days"
    MONTH = "last month"
    QUARTER = "last quarter"
    YEAR = "last year"


class ChartKind(str, Enum):
    BAR = "bar"
    PIE = "pie"
    LINE = "line"


@dataclass
class ChartPoint:
    name: str
    value: float


@dataclass
class Chart:
    """
    A small data chart embedded in the article.
    """
    title: str
    kind: ChartKind
    points: List[ChartPoint] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chart":
        """
        Build a chart from its wire shape ({title, type, data: [{name, value}]}).

        Raises:
            ValueError: if the kind is unknown or a point is malformed
        """
        kind = ChartKind(str(data.get("type", "")).lower())
        points = []
        for raw in data.get("data") or []:
            value = raw["value"]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Chart value is not a number: {value!r}")
            points.append(ChartPoint(name=str(raw["name"]), value=value))
        return cls(title=str(data.get("title", "")), kind=kind, points=points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "type": self.kind.value,
            "data": [{"name": p.name, "value": p.value} for p in self.points],
        }


@dataclass
class SponsoredLink:
    anchor: str
    url: str
    description: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SponsoredLink":
        return cls(
            anchor=str(data["anchor"]),
            url=str(data["url"]),
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"anchor": self.anchor, "url": self.url, "description": self.description}


@dataclass
class Article:
    """
    Represents a generated article.

    introduction, body and conclusion follow the AIDA structure
    (Attention, Interest & Desire, Action). Only ``body`` grows after
    generation; ``generated_image_url`` is filled in by a cover image request.
    """
    title: str
    introduction: str
    body: str
    conclusion: str
    image_prompt: str
    chart: Optional[Chart] = None
    sponsored_link: Optional[SponsoredLink] = None
    generated_image_url: Optional[str] = None

    def __post_init__(self):
        # An empty image URL means no image
        self.generated_image_url = self.generated_image_url or None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        """
        Build an Article from its wire shape.

        Missing or empty required fields raise ValueError. Invalid optional
        fields (chart, sponsoredLink) are dropped with a warning.

        Args:
            data: Decoded JSON object

        Returns:
            The Article
        """
        if not isinstance(data, dict):
            raise ValueError("Article payload is not an object")

        missing = [name for name in REQUIRED_FIELDS if not isinstance(data.get(name), str)]
        if missing:
            raise ValueError(f"Article is missing required fields: {', '.join(missing)}")
        if not data["title"].strip():
            raise ValueError("Article title is empty")

        chart = None
        if data.get("chart"):
            try:
                chart = Chart.from_dict(data["chart"])
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping invalid chart from article '{data['title']}': {e}")

        sponsored_link = None
        if data.get("sponsoredLink"):
            try:
                sponsored_link = SponsoredLink.from_dict(data["sponsoredLink"])
            except (AttributeError, KeyError, TypeError) as e:
                logger.warning(f"Dropping invalid sponsored link from article '{data['title']}': {e}")

        image_url = data.get("generatedImageUrl")

        return cls(
            title=data["title"],
            introduction=data["introduction"],
            body=data["body"],
            conclusion=data["conclusion"],
            image_prompt=data["imagePrompt"],
            chart=chart,
            sponsored_link=sponsored_link,
            generated_image_url=image_url if isinstance(image_url, str) and image_url else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "title": self.title,
            "introduction": self.introduction,
            "body": self.body,
            "conclusion": self.conclusion,
            "imagePrompt": self.image_prompt,
        }
        if self.chart is not None:
            data["chart"] = self.chart.to_dict()
        if self.sponsored_link is not None:
            data["sponsoredLink"] = self.sponsored_link.to_dict()
        if self.generated_image_url:
            data["generatedImageUrl"] = self.generated_image_url
        return data


@dataclass
class HistoryEntry:
    """
    Snapshot of a previously shown article kept in the local history.
    """
    id: str
    title: str
    category: str
    date: str
    thumbnail: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            category=str(data.get("category", "")),
            date=str(data.get("date", "")),
            thumbnail=data.get("thumbnail") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "date": self.date,
            "thumbnail": self.thumbnail,
        }


@dataclass
class SharePayload:
    article: Article
    category: str
    logo: Optional[str] = None

    def __post_init__(self):
        self.logo = self.logo or None


@dataclass
class TopicSuggestion:
    title: str
    description: str


@dataclass
class GroundingSource:
    title: str
    uri: str


@dataclass
class SuggestionResult:
    """
    Topic suggestions plus the web sources they were grounded on.

    ``failure`` is set (and ``topics`` empty) when the response could not be
    parsed, so callers can offer a retry instead of an error page.
    """
    topics: List[TopicSuggestion] = field(default_factory=list)
    sources: List[GroundingSource] = field(default_factory=list)
    failure: Optional[Exception] = None

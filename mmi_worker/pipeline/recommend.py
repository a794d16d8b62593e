"""
Study-article recommendations.

Articles are ranked against the candidate's weakest scoring categories, with
bonuses when the station format (role play, data interpretation) matches the
article's tags. Keyword matching is driven by CATEGORY_KEYWORDS so the table
can change without touching the ranking.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from ..models import Article, Station, OVERALL_CATEGORY

logger = logging.getLogger("mmi_worker")

WEAK_SCORE_THRESHOLD = 75
MAX_WEAK_AREAS = 3
MAX_RECOMMENDATIONS = 3

# Points for a match on the weakest area; each following rank earns RANK_DECAY less
WEAK_AREA_BASE_POINTS = 15
RANK_DECAY = 3
STATION_BONUS = 8

CATEGORY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Structure": ("structure", "star", "framework", "organis", "organiz", "answer technique"),
    "Communication": ("communication", "clarity", "listening", "rapport", "explaining"),
    "Empathy": ("empathy", "compassion", "patient-centred", "patient-centered", "bad news", "emotion"),
    "Ethics": ("ethic", "consent", "confidentiality", "autonomy", "beneficence", "justice", "capacity"),
    "Professionalism": ("professional", "gmc", "good medical practice", "integrity", "probity", "duty"),
    "Motivation": ("motivation", "why medicine", "career", "insight", "work experience"),
    "Teamwork": ("teamwork", "team", "leadership", "multidisciplinary", "mdt", "collaboration"),
}

ROLE_PLAY_TAG_PATTERN = re.compile(
    r"communicat|interpersonal|role[\s_-]?play|patient|empathy|bad news|rapport|consultation",
    re.IGNORECASE
)
DATA_TAG_PATTERN = re.compile(
    r"data|statistic|graph|chart|numerac|evidence|research|interpretation",
    re.IGNORECASE
)


def weak_areas(scores: Dict[str, int], threshold: int = WEAK_SCORE_THRESHOLD) -> List[Tuple[str, int]]:
    """Categories scoring below the threshold, weakest first"""
    areas = [
        (category, score)
        for category, score in scores.items()
        if category != OVERALL_CATEGORY and score < threshold
    ]
    return sorted(areas, key=lambda area: area[1])


def matches_category(article: Article, category: str) -> bool:
    """True when the article's category, tags or title contain a keyword of the area"""
    keywords = CATEGORY_KEYWORDS.get(category, (category.lower(),))
    fields = [article.category or "", article.title or ""] + list(article.tags or [])
    haystacks = [field.lower() for field in fields]
    return any(keyword in haystack for keyword in keywords for haystack in haystacks)


def _tags_match(article: Article, pattern: re.Pattern) -> bool:
    return any(pattern.search(tag or "") for tag in article.tags or [])


def score_article(article: Article, areas: List[Tuple[str, int]],
                  station: Optional[Station] = None) -> int:
    """Relevance of one article to the weak areas and the station format"""
    score = 0
    for rank, (category, _) in enumerate(areas[:MAX_WEAK_AREAS]):
        if matches_category(article, category):
            score += WEAK_AREA_BASE_POINTS - RANK_DECAY * rank

    if station is not None:
        if station.role_play and _tags_match(article, ROLE_PLAY_TAG_PATTERN):
            score += STATION_BONUS
        if station.graph_data and _tags_match(article, DATA_TAG_PATTERN):
            score += STATION_BONUS

    return score


def recommend_articles(scores: Dict[str, int], articles: List[Article],
                       station: Optional[Station] = None,
                       limit: int = MAX_RECOMMENDATIONS) -> List[str]:
    """
    Rank the catalog and return up to `limit` distinct article ids.

    Articles with a positive relevance score come first, ordered by score
    (catalog order on ties). Remaining slots are padded with the rest of the
    catalog in order, so fewer than `limit` ids only come back when the
    catalog itself is that small.
    """
    areas = weak_areas(scores)

    unique_articles: List[Article] = []
    seen = set()
    for article in articles:
        if article.id not in seen:
            seen.add(article.id)
            unique_articles.append(article)

    scored = [(score_article(article, areas, station), article) for article in unique_articles]
    ranked = sorted(scored, key=lambda item: item[0], reverse=True)

    chosen = [article.id for score, article in ranked if score > 0][:limit]

    for article in unique_articles:
        if len(chosen) >= limit:
            break
        if article.id not in chosen:
            chosen.append(article.id)

    logger.info(
        f"Recommended {len(chosen)} articles for weak areas "
        f"{[category for category, _ in areas[:MAX_WEAK_AREAS]]}"
    )
    return chosen

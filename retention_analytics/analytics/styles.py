"""
Style Classification Module

Keyword rules that map a free-text style description onto two independent
axes: the primary (top) region and the secondary (side) region. Rules are
evaluated in declaration order and the first match wins per axis.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

import polars as pl

OTHER = "其他"
NO_DATA = "無數據"

PRIMARY_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("油頭", ("油頭", "pompadour", "all back", "後梳", "側分", "七三", "二八", "紳士", "西裝", "undercut")),
    ("寸頭", ("寸頭", "buzz", "光頭", "平頭", "圓頭")),
    ("凱薩頭", ("凱薩", "caesar", "栗子")),
    ("飛機頭", ("飛機", "quiff", "短飛機", "上抓")),
    ("韓系中分", ("中分", "韓式", "逗號")),
    ("瀏海造型", ("瀏海", "fringe", "丹迪", "前拉", "馬桶蓋", "厚重")),
]

# 高漸層 carries the generic "漸層"/"fade" keywords, so it must stay last
SECONDARY_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("自然順推", ("推", "順推", "自然", "修邊")),
    ("區域漸層", ("區域", "drop", "low", "taper")),
    ("中漸層", ("中漸層", "mid")),
    ("高漸層", ("高漸層", "high", "漸層", "fade")),
]

PRIMARY_CATEGORIES = [category for category, _ in PRIMARY_RULES]
SECONDARY_CATEGORIES = [category for category, _ in SECONDARY_RULES]


@dataclass(frozen=True)
class StyleClass:
    """Classification of one style description"""
    primary: str
    secondary: str


def _match(text: str, rules: List[Tuple[str, Tuple[str, ...]]]) -> str:
    for category, keywords in rules:
        if any(keyword in text for keyword in keywords):
            return category
    return OTHER


def classify_style(style_text: str) -> StyleClass:
    """Classify a style description on both axes"""
    if not style_text:
        return StyleClass(OTHER, OTHER)
    text = style_text.lower()
    return StyleClass(_match(text, PRIMARY_RULES), _match(text, SECONDARY_RULES))


@dataclass
class StyleDistribution:
    """Per-axis category counts over a list of style descriptions"""
    total: int
    primary: Dict[str, int] = field(default_factory=dict)
    secondary: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_styles(cls, styles: Iterable[str]) -> "StyleDistribution":
        primary: Counter = Counter()
        secondary: Counter = Counter()
        total = 0
        for text in styles:
            style = classify_style(text)
            primary[style.primary] += 1
            secondary[style.secondary] += 1
            total += 1
        return cls(total=total, primary=dict(primary), secondary=dict(secondary))

    @staticmethod
    def _leading(counts: Dict[str, int], total: int) -> Tuple[str, float]:
        if not counts or not total:
            return NO_DATA, 0.0
        # Ties resolve to the category seen first
        key = max(counts, key=lambda k: counts[k])
        return key, counts[key] / total * 100

    @property
    def leading_primary(self) -> Tuple[str, float]:
        """Most frequent primary category and its share in percent"""
        return self._leading(self.primary, self.total)

    @property
    def leading_secondary(self) -> Tuple[str, float]:
        """Most frequent secondary category and its share in percent"""
        return self._leading(self.secondary, self.total)


@dataclass
class StyleBreakdown:
    """Style mix of a set of transactions with a monthly primary trend"""
    distribution: StyleDistribution
    monthly_primary: Dict[str, Dict[str, int]]
    monthly_totals: Dict[str, int]


def style_breakdown(df: pl.DataFrame, new_only: bool = False) -> StyleBreakdown:
    """
    Classify every transaction's style and count per axis and per month.

    Args:
        df: Transactions frame
        new_only: Restrict to rows flagged as a true first visit
    """
    if new_only:
        df = df.filter(pl.col("is_true_new_visit"))

    styles = df.get_column("style_text").to_list()
    months = df.get_column("month").to_list()

    monthly_primary: Dict[str, Dict[str, int]] = {}
    monthly_totals: Dict[str, int] = {}
    for month, text in zip(months, styles):
        category = classify_style(text).primary
        bucket = monthly_primary.setdefault(month, {})
        bucket[category] = bucket.get(category, 0) + 1
        monthly_totals[month] = monthly_totals.get(month, 0) + 1

    return StyleBreakdown(
        distribution=StyleDistribution.from_styles(styles),
        monthly_primary=dict(sorted(monthly_primary.items())),
        monthly_totals=dict(sorted(monthly_totals.items())),
    )

"""
Taxonomy Loader — loads and validates trend taxonomies from YAML.

A taxonomy tells the normalizer which named trends to look for in captions
and tells the trend engine how to bucket trend identifiers into categories.
To switch taxonomies, set ACTIVE_TAXONOMY in .env or pass a name explicitly.
"""

import yaml
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import config


class TaxonomyValidationError(Exception):
    """Raised when a taxonomy profile is missing or has malformed sections."""
    pass


@dataclass(frozen=True)
class Taxonomy:
    name: str
    trend_patterns: Dict[str, List[str]]     # trend name -> keywords
    trend_categories: Dict[str, List[str]]   # category -> keywords
    brands: List[str] = field(default_factory=list)

    def match_trends(self, text: str, hashtags: List[str]) -> List[str]:
        """Return trend names whose keywords hit the text or any hashtag."""
        text = text.lower()
        matched = []
        for trend, keywords in self.trend_patterns.items():
            for keyword in keywords:
                if keyword in text or any(keyword in tag for tag in hashtags):
                    matched.append(trend)
                    break
        return matched

    def detect_category(self, identifier: str) -> str:
        """First category with a keyword inside the identifier, else 'other'."""
        lowered = identifier.lower()
        for category, keywords in self.trend_categories.items():
            if any(keyword in lowered for keyword in keywords):
                return category
        return "other"

    def find_brands(self, text: str) -> List[str]:
        text = text.lower()
        return [brand for brand in self.brands if brand in text]


REQUIRED_SECTIONS = ["trend_patterns", "trend_categories"]


DEFAULT_TAXONOMY = Taxonomy(
    name="default",
    trend_patterns={
        "normcore": ["normcore", "normal", "basic", "simple", "minimal", "everyday"],
        "homesteading": ["homestead", "farm", "self-sufficient", "rural",
                         "sustainable", "diy", "offgrid"],
        "antiPastaSalad": ["anti pasta", "antipasta", "salad", "viral recipe", "food trend"],
        "bugatti": ["bugatti", "luxury car", "supercar", "millionaire", "wealth", "success"],
    },
    trend_categories={
        "fashion": ["fashion", "style", "outfit", "wear", "clothes", "aesthetic"],
        "food": ["recipe", "food", "cooking", "baking", "meal", "dish"],
        "lifestyle": ["life", "routine", "morning", "night", "day", "habit"],
        "tech": ["tech", "gadget", "app", "software", "device", "digital"],
        "fitness": ["workout", "exercise", "gym", "fitness", "health", "wellness"],
        "entertainment": ["movie", "show", "music", "game", "celebrity", "drama"],
    },
    brands=["nike", "adidas", "apple", "samsung", "coca cola", "pepsi",
            "mcdonalds", "starbucks"],
)


def load_taxonomy(taxonomy_name: Optional[str] = None,
                  profiles_dir=None) -> Taxonomy:
    """
    Load a trend taxonomy from profiles/<name>.yaml.

    Args:
        taxonomy_name: Name of the taxonomy profile.
                       Defaults to ACTIVE_TAXONOMY from .env.
        profiles_dir: Directory holding the YAML files (defaults to config.PROFILES_DIR).

    Returns:
        Taxonomy dataclass.

    Raises:
        TaxonomyValidationError: If the profile is empty or invalid.
        FileNotFoundError: If no YAML file exists for the name.
    """
    if taxonomy_name is None:
        taxonomy_name = config.ACTIVE_TAXONOMY
    profiles_dir = profiles_dir or config.PROFILES_DIR

    yaml_path = profiles_dir / f"{taxonomy_name}.yaml"

    if not yaml_path.exists():
        available = [f.stem for f in profiles_dir.glob("*.yaml")]
        raise FileNotFoundError(
            f"Taxonomy '{taxonomy_name}' not found at {yaml_path}\n"
            f"Available taxonomies: {available}"
        )

    with open(yaml_path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        raise TaxonomyValidationError(f"Taxonomy '{taxonomy_name}' is empty.")

    _validate_taxonomy(data, taxonomy_name)

    return _build_taxonomy(data, taxonomy_name)


def _validate_taxonomy(data: dict, taxonomy_name: str) -> None:
    """Validate that both keyword sections are name -> list-of-strings mappings."""
    if not isinstance(data, dict):
        raise TaxonomyValidationError(
            f"Taxonomy '{taxonomy_name}' must be a mapping at the top level."
        )

    missing_sections = [s for s in REQUIRED_SECTIONS if s not in data]
    if missing_sections:
        raise TaxonomyValidationError(
            f"Taxonomy '{taxonomy_name}' is missing required sections: {missing_sections}"
        )

    for section in REQUIRED_SECTIONS:
        entries = data[section]
        if not isinstance(entries, dict) or not entries:
            raise TaxonomyValidationError(
                f"Taxonomy '{taxonomy_name}' section '{section}' must be a non-empty mapping."
            )
        for name, keywords in entries.items():
            if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
                raise TaxonomyValidationError(
                    f"Taxonomy '{taxonomy_name}' entry '{section}.{name}' "
                    f"must be a list of strings."
                )

    brands = data.get("brands", [])
    if brands is not None and not isinstance(brands, list):
        raise TaxonomyValidationError(
            f"Taxonomy '{taxonomy_name}' brands must be a list."
        )


def _build_taxonomy(data: dict, taxonomy_name: str) -> Taxonomy:
    """Construct Taxonomy from validated YAML data. Keywords are lowercased."""
    return Taxonomy(
        name=taxonomy_name,
        trend_patterns={
            str(name): [k.lower() for k in keywords]
            for name, keywords in data["trend_patterns"].items()
        },
        trend_categories={
            str(name): [k.lower() for k in keywords]
            for name, keywords in data["trend_categories"].items()
        },
        brands=[str(b).lower() for b in (data.get("brands") or [])],
    )

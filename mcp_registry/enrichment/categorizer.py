"""
Keyword-based classification of packages into functional categories.

A package can belong to several categories. Name, description and
keywords are matched by substring; the README only counts when a
category's keywords appear in it as whole words more than twice.
"""

import re

from loguru import logger

from mcp_registry.config import CATEGORIES, UNCATEGORIZED

# Stop consulting READMEs once this many categories are assigned
README_CATEGORY_LIMIT = 3
README_MIN_MATCHES = 3


def _matches(text: str | None, keywords: list[str]) -> bool:
    if not text:
        return False
    lower = text.lower()
    return any(keyword.lower() in lower for keyword in keywords)


def count_keyword_matches(text: str | None, keywords: list[str]) -> int:
    """Count whole-word occurrences of any keyword in text."""
    if not text:
        return 0
    lower = text.lower()
    return sum(
        len(re.findall(rf"\b{re.escape(keyword.lower())}\b", lower))
        for keyword in keywords
    )


def categorize(
    name: str,
    description: str | None = None,
    keywords: list[str] | None = None,
    readme: str | None = None,
    categories: dict[str, list[str]] | None = None,
) -> list[str]:
    """
    Assign functional categories to a package.

    Args:
        name: Package name
        description: Package description
        keywords: Keywords/topics reported by the registry
        readme: README text, searched with lower weight
        categories: Category name -> keywords (defaults to CATEGORIES)

    Returns:
        Category names in definition order, or ["Uncategorized"]
    """
    categories = categories if categories is not None else CATEGORIES
    assigned: list[str] = []

    for category, category_keywords in categories.items():
        if (
            _matches(name, category_keywords)
            or _matches(description, category_keywords)
            or any(_matches(keyword, category_keywords) for keyword in keywords or [])
        ):
            assigned.append(category)
            continue

        if readme and len(assigned) < README_CATEGORY_LIMIT:
            if count_keyword_matches(readme, category_keywords) >= README_MIN_MATCHES:
                assigned.append(category)

    if not assigned:
        logger.debug(f"{name} has no category matches")
        return [UNCATEGORIZED]

    return assigned

"""
Field-level merge of a duplicate observation into its canonical record.

Each rule is independent. The merge as a whole is order-sensitive:
the version and README rules keep whichever value wins the comparison,
so merging A then B can differ from merging B then A.
"""

from loguru import logger

from mcp_registry.models import CanonicalRecord, Origin


def merge_into(existing: CanonicalRecord, incoming: CanonicalRecord) -> None:
    """
    Merge ``incoming`` into ``existing`` in place.

    Rules:
    - stars/forks: taken from GitHub observations only
    - downloads: incoming origin's count inserted/overwritten, others kept
    - readme: the strictly longer one wins
    - source URLs: incoming origin's URL inserted/overwritten
    - version: plain string comparison, greater wins (not semver aware)
    - last updated: strictly later wins, with its active flag
    - name, description, license, author, keywords: first seen wins

    Args:
        existing: Canonical record already in the store
        incoming: Duplicate observation, discarded afterwards
    """
    origin = incoming.source.value

    if incoming.source is Origin.GITHUB:
        if incoming.stars is not None:
            existing.stars = incoming.stars
        if incoming.forks is not None:
            existing.forks = incoming.forks

    incoming_downloads = incoming.downloads.get(origin)
    if incoming_downloads is not None:
        existing.downloads[origin] = incoming_downloads

    if incoming.readme and len(incoming.readme) > len(existing.readme or ""):
        existing.readme = incoming.readme

    existing.source_urls[origin] = incoming.source_url

    # Lexicographic on purpose: "1.10.0" < "1.9.0" here
    if incoming.version and incoming.version > (existing.version or ""):
        existing.version = incoming.version

    if incoming.last_updated > existing.last_updated:
        existing.last_updated = incoming.last_updated
        existing.is_active = incoming.is_active

    logger.debug(f"Merged duplicate: {existing.name} <- {incoming.name} ({origin})")

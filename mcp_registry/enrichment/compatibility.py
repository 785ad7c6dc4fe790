"""
AI client compatibility inferred from documentation text.

Nothing is executed: a client counts as "likely" compatible when its
name appears in the description or README.
"""

import re

from mcp_registry.config import CLIENT_NAMES
from mcp_registry.models import CompatibilityInfo


def find_client_mentions(text: str | None, clients: list[str] = CLIENT_NAMES) -> list[str]:
    """Client names mentioned as whole words (case-insensitive), in list order."""
    if not text:
        return []
    return [
        client for client in clients
        if re.search(rf"\b{re.escape(client)}\b", text, re.IGNORECASE)
    ]


def check_compatibility(description: str | None, readme: str | None = None) -> list[CompatibilityInfo]:
    """
    Infer which AI clients a server works with.

    Args:
        description: Package description
        readme: README text

    Returns:
        One entry per detected client, or a single "Unknown" entry
    """
    results: list[CompatibilityInfo] = []
    seen: set[str] = set()

    def add(client: str, notes: str) -> None:
        if client not in seen:
            seen.add(client)
            results.append(CompatibilityInfo(client=client, status="likely", notes=notes))

    for client in find_client_mentions(description):
        add(client, "Mentioned in description")

    if readme:
        for client in find_client_mentions(readme):
            add(client, "Mentioned in README")

        # Quoted names in config snippets
        for client in CLIENT_NAMES:
            if f'"{client}"' in readme or f"'{client}'" in readme:
                add(client, "Configuration example found")

    if not results:
        results.append(
            CompatibilityInfo(
                client="Unknown",
                status="unknown",
                notes="No compatibility information found in documentation",
            )
        )

    return results

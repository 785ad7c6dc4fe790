"""
Enrichment of canonical records from their own text.

- categorizer: functional categories from keyword matches
- compatibility: AI clients mentioned in the documentation
- installation: install commands and a sample client configuration
"""

from mcp_registry.enrichment.categorizer import categorize
from mcp_registry.enrichment.compatibility import check_compatibility
from mcp_registry.enrichment.installation import generate_instructions

__all__ = ["categorize", "check_compatibility", "generate_instructions"]

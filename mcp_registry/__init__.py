"""
MCP Server Registry

Discovers Model Context Protocol server packages on GitHub, npm and PyPI
and consolidates every observation of the same package into one
canonical record, across repeated runs.
"""

__version__ = "0.1.0"

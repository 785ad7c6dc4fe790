"""Installation commands and sample client configuration for a package."""

import json
import re

from mcp_registry.models import InstallationInstructions, InstallCommand, Origin

_KEBAB = re.compile(r"-([a-z])")


def server_key(name: str) -> str:
    """kebab-case package name -> camelCase key for ``mcpServers``."""
    return _KEBAB.sub(lambda m: m.group(1).upper(), name)


def needs_env_block(readme: str | None) -> bool:
    # Claude-oriented READMEs document their own setup; keep the sample minimal
    if not readme or "claude" in readme.lower():
        return False
    return "environment" in readme and "variable" in readme


def config_example(name: str, readme: str | None = None) -> str:
    """JSON client configuration launching the server."""
    entry = {"command": "npm", "args": ["exec", name]}
    if needs_env_block(readme):
        entry["env"] = {"API_KEY": "your-api-key-here"}
    return json.dumps({"mcpServers": {server_key(name): entry}}, indent=2)


def generate_instructions(
    name: str,
    version: str,
    source: Origin,
    readme: str | None = None,
) -> InstallationInstructions:
    """
    Build installation guidance for a package.

    npm packages get an ``npm install`` command, PyPI packages ``pip`` and
    ``uvx`` commands. Every package gets a configuration example.
    """
    instructions = InstallationInstructions(config_example=config_example(name, readme))

    if source is Origin.NPM:
        instructions.npm = InstallCommand(
            command=f"npm install {name}@{version}",
            package=name,
            version=version,
        )
    elif source is Origin.PYPI:
        instructions.pypi = [
            InstallCommand(command=f"pip install {name}=={version}", package=name, version=version),
            InstallCommand(command=f"uvx {name}=={version}", package=name, version=version),
        ]

    return instructions

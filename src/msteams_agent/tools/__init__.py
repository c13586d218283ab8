"""Arcade tool retrieval for msteams-agent."""

from msteams_agent.tools.provider import create_client, get_tools

__all__ = [
    "create_client",
    "get_tools",
]

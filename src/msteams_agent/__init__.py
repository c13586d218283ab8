"""
msteams-agent - Terminal chat agent for Microsoft Teams.

A LangChain agent that works in Microsoft Teams through Arcade-hosted tools.
Tool calls that need OAuth authorization or user approval pause the agent
until the user has answered in the terminal.

Example:
    >>> from msteams_agent import AgentConfig, run_chat
    >>> config = AgentConfig.from_env()
    >>> asyncio.run(run_chat(config))
"""

__version__ = "1.0.0"
__license__ = "MIT"


def __getattr__(name: str):
    """Lazy import for the agent runtime."""
    if name in ("AgentConfig", "ConfigurationError"):
        from msteams_agent.utils import config

        return getattr(config, name)
    elif name in ("ChatSession", "run_chat", "main"):
        from msteams_agent.inference import agent

        return getattr(agent, name)
    elif name == "get_tools":
        from msteams_agent.tools.provider import get_tools

        return get_tools
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AgentConfig",
    "ConfigurationError",
    "ChatSession",
    "run_chat",
    "main",
    "get_tools",
    "__version__",
]

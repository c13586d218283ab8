"""Utility modules for msteams-agent."""

from msteams_agent.utils.config import AgentConfig, ConfigurationError
from msteams_agent.utils.logging import get_logger, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
    "AgentConfig",
    "ConfigurationError",
]

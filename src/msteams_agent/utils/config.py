"""Configuration for the Microsoft Teams agent."""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from msteams_agent.inference.prompts import SYSTEM_PROMPT

# Environment variables read by AgentConfig.from_env()
ENV_USER_ID = "ARCADE_USER_ID"
ENV_MODEL = "OPENAI_MODEL"
ENV_TOOLKITS = "ARCADE_TOOLKITS"
ENV_TOOLS = "ARCADE_TOOLS"
ENV_TOOL_LIMIT = "ARCADE_TOOL_LIMIT"
ENV_APPROVAL_TOOLS = "ARCADE_APPROVAL_TOOLS"
ENV_THREAD_ID = "AGENT_THREAD_ID"

DEFAULT_TOOLKITS = ["MicrosoftTeams"]
DEFAULT_TOOL_LIMIT = 100
DEFAULT_THREAD_ID = "1"

# Tools that change state in Teams; the user approves each call.
DEFAULT_APPROVAL_TOOLS = [
    "MicrosoftTeams_CreateChat",
    "MicrosoftTeams_SendMessageToChat",
    "MicrosoftTeams_SendMessageToChannel",
    "MicrosoftTeams_ReplyToChatMessage",
    "MicrosoftTeams_ReplyToChannelMessage",
]


class ConfigurationError(ValueError):
    """Raised when the agent cannot start because of missing or invalid settings."""


def _split_list(raw: Optional[str]) -> Optional[list[str]]:
    """Parse a comma separated environment value, ``None`` when unset."""
    if raw is None:
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class AgentConfig:
    """Configuration for one chat session with the Teams agent."""

    # Identity and model
    user_id: str = ""
    model: str = ""

    # Tool retrieval
    toolkits: list[str] = field(default_factory=lambda: list(DEFAULT_TOOLKITS))
    tools: list[str] = field(default_factory=list)
    tool_limit: int = DEFAULT_TOOL_LIMIT
    approval_tools: list[str] = field(
        default_factory=lambda: list(DEFAULT_APPROVAL_TOOLS)
    )

    # Conversation
    thread_id: str = DEFAULT_THREAD_ID
    system_prompt: str = SYSTEM_PROMPT

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any
    ) -> "AgentConfig":
        """
        Build a validated config from environment variables.

        Args:
            environ: Mapping to read from (default: ``os.environ``)
            **overrides: Field values that take precedence over the environment;
                ``None`` values are ignored

        Returns:
            Validated AgentConfig

        Raises:
            ConfigurationError: If a required variable is missing or a value
                is invalid
        """
        env = os.environ if environ is None else environ

        values: dict[str, Any] = {
            "user_id": env.get(ENV_USER_ID, ""),
            "model": env.get(ENV_MODEL, ""),
        }

        toolkits = _split_list(env.get(ENV_TOOLKITS))
        if toolkits is not None:
            values["toolkits"] = toolkits
        tools = _split_list(env.get(ENV_TOOLS))
        if tools is not None:
            values["tools"] = tools
        approval_tools = _split_list(env.get(ENV_APPROVAL_TOOLS))
        if approval_tools is not None:
            values["approval_tools"] = approval_tools
        if env.get(ENV_THREAD_ID):
            values["thread_id"] = env[ENV_THREAD_ID]

        raw_limit = env.get(ENV_TOOL_LIMIT)
        if raw_limit:
            try:
                values["tool_limit"] = int(raw_limit)
            except ValueError as e:
                raise ConfigurationError(
                    f"{ENV_TOOL_LIMIT} must be an integer, got {raw_limit!r}"
                ) from e

        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check that the config can start a session.

        Raises:
            ConfigurationError: On the first invalid setting found
        """
        if not self.user_id:
            raise ConfigurationError(
                f"Missing {ENV_USER_ID}. Add it to your .env file."
            )
        if not self.model:
            raise ConfigurationError(
                f"Missing {ENV_MODEL}. Add it to your .env file."
            )
        if self.tool_limit < 1:
            raise ConfigurationError(
                f"tool_limit must be at least 1, got {self.tool_limit}"
            )
        if not self.toolkits and not self.tools:
            raise ConfigurationError(
                "At least one toolkit or tool must be configured."
            )

    @property
    def model_identifier(self) -> str:
        """Chat model string for LangChain; bare names are OpenAI models."""
        if ":" in self.model:
            return self.model
        return f"openai:{self.model}"

    def runnable_config(self) -> dict[str, Any]:
        """Config passed to every agent stream call for this session."""
        return {"configurable": {"thread_id": self.thread_id}}


def read_config_file(path: str) -> dict[str, Any]:
    """
    Read settings from a JSON or YAML file.

    Args:
        path: File path; ``.yaml`` and ``.yml`` files are parsed as YAML

    Returns:
        Mapping of config field names to values

    Raises:
        ConfigurationError: If the file does not contain a mapping
    """
    with open(path) as f:
        if path.endswith((".yaml", ".yml")):
            import yaml

            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data

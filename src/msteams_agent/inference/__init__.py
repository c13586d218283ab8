"""Chat session modules for msteams-agent."""

from typing import Any

__all__ = ["ChatSession", "build_agent", "stream_turn", "handle_interrupt", "Terminal"]


def __getattr__(name: str) -> Any:
    """Lazy import for langchain-dependent modules."""
    if name in ("ChatSession", "build_agent", "stream_turn"):
        from msteams_agent.inference import agent

        return getattr(agent, name)
    elif name == "handle_interrupt":
        from msteams_agent.inference.interrupts import handle_interrupt

        return handle_interrupt
    elif name == "Terminal":
        from msteams_agent.inference.terminal import Terminal

        return Terminal
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

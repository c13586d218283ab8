"""
Microsoft Teams chat agent.

Runs a terminal chat loop against a LangChain agent equipped with Arcade's
Microsoft Teams tools. Tool calls that need OAuth authorization or user
approval pause the agent; the session resolves those interrupts and resumes
the agent until the turn completes.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

from langchain.agents import create_agent
from langgraph.checkpoint.memory import MemorySaver

from msteams_agent.inference.interrupts import build_resume_command, handle_interrupt
from msteams_agent.inference.terminal import Terminal
from msteams_agent.utils.config import AgentConfig, ConfigurationError, read_config_file
from msteams_agent.utils.logging import get_logger

logger = get_logger("inference.agent")

AGENT_PREFIX = "🤖:"
EXIT_COMMAND = "exit"


def build_agent(
    config: AgentConfig,
    tools: Sequence[Any],
    checkpointer: Optional[Any] = None
) -> Any:
    """
    Create the tool-calling agent.

    Args:
        config: Session configuration (model and system prompt)
        tools: LangChain tools available to the agent
        checkpointer: Conversation store keyed by thread id
            (default: in-memory ``MemorySaver``)

    Returns:
        Compiled LangGraph agent
    """
    logger.info("Creating agent with model %s and %d tools", config.model_identifier, len(tools))
    return create_agent(
        model=config.model_identifier,
        tools=list(tools),
        system_prompt=config.system_prompt,
        checkpointer=checkpointer if checkpointer is not None else MemorySaver(),
    )


def _format_message(message: Any) -> str:
    if hasattr(message, "pretty_repr"):
        return message.pretty_repr()
    return str(message)


async def stream_turn(
    agent: Any,
    turn_input: Any,
    runnable_config: dict[str, Any],
    terminal: Terminal
) -> list[Any]:
    """
    Stream one run of the agent and print its messages.

    Args:
        agent: Compiled agent supporting ``astream``
        turn_input: New messages, or a resume ``Command``
        runnable_config: Config carrying the thread id
        terminal: Where assistant messages are printed

    Returns:
        Interrupts raised during the run, in the order they were streamed
    """
    interrupts: list[Any] = []

    async for chunk in agent.astream(turn_input, runnable_config, stream_mode="updates"):
        if "__interrupt__" in chunk:
            interrupts.extend(chunk["__interrupt__"])
            continue

        for node, update in chunk.items():
            if not isinstance(update, dict):
                continue
            for message in update.get("messages") or []:
                logger.debug("Message from node %s", node)
                terminal.print(AGENT_PREFIX, _format_message(message), markup=False)

    return interrupts


class ChatSession:
    """
    Read-eval-print loop around the agent.

    One session owns one conversation thread. A turn may span several
    interrupt/resume cycles; the terminal stays paused until the last
    cycle finishes without interrupts.

    Example:
        >>> session = ChatSession(agent, config, Terminal(), client)
        >>> await session.run()
    """

    def __init__(
        self,
        agent: Any,
        config: AgentConfig,
        terminal: Terminal,
        client: Any
    ):
        self.agent = agent
        self.config = config
        self.terminal = terminal
        self.client = client
        self.runnable_config = config.runnable_config()

    async def run_turn(self, text: str) -> None:
        """Run one user message to completion, resolving interrupts on the way."""
        turn_input: Any = {"messages": [{"role": "user", "content": text}]}

        while True:
            interrupts = await stream_turn(
                self.agent, turn_input, self.runnable_config, self.terminal
            )
            if not interrupts:
                break

            decisions = []
            for interrupt in interrupts:
                decisions.append(
                    await handle_interrupt(interrupt, self.terminal, self.client)
                )

            turn_input = build_resume_command(interrupts, decisions)
            logger.debug("Resuming thread %s with %s", self.config.thread_id, turn_input.resume)

    async def run(self) -> None:
        """Prompt for messages until the user types ``exit``."""
        self.terminal.welcome()

        while True:
            try:
                text = await self.terminal.read_line("> ")
            except (EOFError, KeyboardInterrupt):
                break

            if text.lower() == EXIT_COMMAND:
                break

            self.terminal.pause()
            try:
                await self.run_turn(text)
            except Exception as e:
                logger.exception("Turn failed")
                self.terminal.print(f"Error: {e}", style="red", markup=False)
            finally:
                self.terminal.resume()

        self.terminal.farewell()


async def run_chat(config: AgentConfig, terminal: Optional[Terminal] = None) -> None:
    """
    Fetch tools, build the agent and run an interactive session.

    Args:
        config: Validated session configuration
        terminal: Interactive handle (default: a new ``Terminal``)
    """
    from msteams_agent.tools.provider import create_client, get_tools

    client = create_client()
    tools = await get_tools(
        client,
        toolkits=config.toolkits,
        tools=config.tools,
        user_id=config.user_id,
        limit=config.tool_limit,
        approval_tools=config.approval_tools,
    )
    agent = build_agent(config, tools)

    session = ChatSession(agent, config, terminal or Terminal(), client)
    await session.run()


def _load_file_config(path: str) -> dict[str, Any]:
    """Values from a config file that should override the environment."""
    return {k: v for k, v in read_config_file(path).items() if v not in ("", None)}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Interactive CLI for the Microsoft Teams agent."""
    import argparse

    from dotenv import load_dotenv

    parser = argparse.ArgumentParser(
        description="Chat with a Microsoft Teams agent powered by Arcade tools"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON or YAML file with agent settings"
    )
    parser.add_argument(
        "--toolkit",
        action="append",
        dest="toolkits",
        default=None,
        help="Arcade toolkit to load (repeatable, default: MicrosoftTeams)"
    )
    parser.add_argument(
        "--tool",
        action="append",
        dest="tools",
        default=None,
        help="Individual Arcade tool to load (repeatable)"
    )
    parser.add_argument(
        "--tool-limit",
        type=int,
        default=None,
        help="Maximum number of tool definitions to load"
    )
    parser.add_argument(
        "--thread-id",
        type=str,
        default=None,
        help="Conversation thread identifier"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file"
    )

    args = parser.parse_args(argv)

    load_dotenv()

    from msteams_agent.utils.logging import setup_logging
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=args.log_file,
    )

    terminal = Terminal()

    try:
        overrides = _load_file_config(args.config) if args.config else {}
        cli_values = {
            "toolkits": args.toolkits,
            "tools": args.tools,
            "tool_limit": args.tool_limit,
            "thread_id": args.thread_id,
        }
        overrides.update({k: v for k, v in cli_values.items() if v is not None})
        config = AgentConfig.from_env(**overrides)
    except (ConfigurationError, ValueError, TypeError, OSError) as e:
        logger.error(str(e))
        terminal.print(str(e), style="red", markup=False)
        return 1

    try:
        asyncio.run(run_chat(config, terminal))
    except KeyboardInterrupt:
        terminal.farewell()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

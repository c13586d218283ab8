"""Interactive terminal handle and the yes/no confirmation prompt."""

import re
from typing import Any, Optional

from prompt_toolkit import PromptSession
from rich.console import Console

from msteams_agent.utils.logging import get_logger

logger = get_logger("inference.terminal")

YES_PATTERN = re.compile(r"^y(es)?$")

WELCOME_MESSAGE = "Welcome to the chatbot! Type 'exit' to quit."
FAREWELL_MESSAGE = "👋 Bye..."


class Terminal:
    """
    The single input/output handle shared by the chat prompt and approvals.

    Output goes through a rich ``Console``; input is read with
    prompt_toolkit's ``prompt_async`` so the event loop keeps running while
    waiting for the user. While a turn is running the terminal is paused:
    top-level reads are refused, but nested questions (tool approvals)
    still go through.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        session: Optional[PromptSession] = None
    ):
        self.console = console or Console()
        self._session = session
        self._paused = False

    @property
    def session(self) -> PromptSession:
        if self._session is None:
            self._session = PromptSession()
        return self._session

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    async def question(self, text: str) -> str:
        """Write ``text`` and return one line typed by the user."""
        return await self.session.prompt_async(text)

    async def read_line(self, prompt: str = "> ") -> str:
        """Read the next chat line; only valid while the terminal is not paused."""
        if self._paused:
            raise RuntimeError("Terminal is paused while a turn is running")
        return await self.question(prompt)

    def print(self, *objects: Any, **kwargs: Any) -> None:
        self.console.print(*objects, **kwargs)

    def welcome(self) -> None:
        self.console.print(WELCOME_MESSAGE, style="green", markup=False)

    def farewell(self) -> None:
        self.console.print(FAREWELL_MESSAGE, style="red", markup=False)


def is_affirmative(answer: Optional[str]) -> bool:
    """True for ``y``/``yes`` in any case, ignoring surrounding whitespace."""
    if answer is None:
        return False
    return bool(YES_PATTERN.match(answer.strip().lower()))


async def confirm(question: str, terminal: Terminal) -> bool:
    """
    Ask a yes/no question on the terminal.

    Anything other than an explicit yes, including empty input and
    end-of-file, is a decline. Invalid answers are not re-asked.

    Args:
        question: Question shown to the user
        terminal: Interactive handle to ask on

    Returns:
        Whether the user answered yes
    """
    try:
        answer = await terminal.question(f"{question} (y/n) ")
    except EOFError:
        logger.debug("No answer to %r, treating as decline", question)
        return False
    return is_affirmative(answer)

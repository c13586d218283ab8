"""Shared fixtures for the msteams-agent tests."""

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from msteams_agent.inference.terminal import Terminal


class ScriptedTerminal(Terminal):
    """Terminal that answers questions from a list and records what happens."""

    def __init__(self, answers=None):
        self.output = io.StringIO()
        super().__init__(
            console=Console(file=self.output, force_terminal=False, width=200)
        )
        self.answers = list(answers or [])
        self.events = []

    async def question(self, text):
        self.events.append(("question", text))
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def pause(self):
        self.events.append("pause")
        super().pause()

    def resume(self):
        self.events.append("resume")
        super().resume()

    @property
    def text(self):
        return self.output.getvalue()


@pytest.fixture
def terminal():
    """Terminal with no scripted answers."""
    return ScriptedTerminal()


@pytest.fixture
def arcade_client():
    """Arcade client whose authorization wait succeeds."""
    client = MagicMock()
    client.auth.wait_for_completion = AsyncMock(return_value=MagicMock(status="completed"))
    return client

"""Tests for the agent turn driver, the chat session and the CLI."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, ToolMessage
from langgraph.checkpoint.memory import MemorySaver
from langgraph.types import Command

from msteams_agent.inference import agent as agent_module
from msteams_agent.inference.agent import ChatSession, build_agent, main, stream_turn
from msteams_agent.utils.config import AgentConfig

from conftest import ScriptedTerminal

CONFIG = AgentConfig(user_id="user@example.com", model="gpt-4o", thread_id="t-1")

APPROVAL = {"hitl_required": True, "tool_name": "MicrosoftTeams_SendMessageToChat", "input": {}}
AUTH = {
    "authorization_required": True,
    "tool_name": "MicrosoftTeams_ListChats",
    "authorization_response": {"id": "a1", "url": "http://auth"},
}


def make_interrupt(value, interrupt_id):
    return SimpleNamespace(value=value, id=interrupt_id)


class FakeAgent:
    """Agent whose astream calls replay scripted runs of update chunks."""

    def __init__(self, runs):
        self.runs = list(runs)
        self.calls = []

    def astream(self, turn_input, config, stream_mode=None):
        self.calls.append((turn_input, config, stream_mode))
        chunks = self.runs.pop(0)

        async def _gen():
            for chunk in chunks:
                if isinstance(chunk, Exception):
                    raise chunk
                yield chunk

        return _gen()


class TestStreamTurn:
    """Test suite for stream_turn."""

    def test_prints_messages_in_order(self):
        """Test that every message of every update is printed."""
        agent = FakeAgent([[
            {"model": {"messages": [AIMessage(content="first"), AIMessage(content="second")]}},
            {"tools": {"messages": [ToolMessage(content="third", tool_call_id="c1")]}},
        ]])
        terminal = ScriptedTerminal()

        interrupts = asyncio.run(
            stream_turn(agent, {"messages": []}, CONFIG.runnable_config(), terminal)
        )

        assert interrupts == []
        text = terminal.text
        assert text.index("first") < text.index("second") < text.index("third")
        assert text.count("🤖:") == 3

    def test_uses_update_stream_mode_and_config(self):
        """Test that the agent is streamed with updates for the session thread."""
        agent = FakeAgent([[]])
        turn_input = {"messages": [{"role": "user", "content": "hi"}]}

        asyncio.run(stream_turn(agent, turn_input, CONFIG.runnable_config(), ScriptedTerminal()))

        assert agent.calls == [
            (turn_input, {"configurable": {"thread_id": "t-1"}}, "updates")
        ]

    def test_collects_interrupts_in_order(self):
        """Test that interrupts from several chunks are accumulated in order."""
        first = make_interrupt(AUTH, "i1")
        second = make_interrupt(APPROVAL, "i2")
        third = make_interrupt(APPROVAL, "i3")
        agent = FakeAgent([[
            {"__interrupt__": (first, second)},
            {"__interrupt__": (third,)},
        ]])

        interrupts = asyncio.run(
            stream_turn(agent, {}, CONFIG.runnable_config(), ScriptedTerminal())
        )

        assert interrupts == [first, second, third]

    def test_interrupt_chunk_not_printed(self):
        """Test that interrupt chunks are skipped for message printing."""
        agent = FakeAgent([[{"__interrupt__": (make_interrupt(AUTH, "i1"),)}]])
        terminal = ScriptedTerminal()

        asyncio.run(stream_turn(agent, {}, CONFIG.runnable_config(), terminal))

        assert "🤖:" not in terminal.text

    def test_ignores_updates_without_messages(self):
        """Test that empty node updates are ignored."""
        agent = FakeAgent([[{"model": None}, {"tools": {"other": 1}}, {"model": {"messages": None}}]])
        terminal = ScriptedTerminal()

        interrupts = asyncio.run(stream_turn(agent, {}, CONFIG.runnable_config(), terminal))

        assert interrupts == []
        assert terminal.text == ""


class TestChatSession:
    """Test suite for ChatSession."""

    def _session(self, runs, answers, client=None):
        agent = FakeAgent(runs)
        terminal = ScriptedTerminal(answers)
        if client is None:
            client = MagicMock()
            client.auth.wait_for_completion = AsyncMock()
        return ChatSession(agent, CONFIG, terminal, client), agent, terminal

    def test_exit_without_turn(self):
        """Test that exit ends the loop without running the agent."""
        session, agent, terminal = self._session([], ["exit"])
        asyncio.run(session.run())

        assert agent.calls == []
        assert "pause" not in terminal.events
        assert "Welcome" in terminal.text
        assert "Bye" in terminal.text

    def test_exit_is_case_insensitive(self):
        """Test that EXIT also ends the loop."""
        session, agent, _ = self._session([], ["EXIT"])
        asyncio.run(session.run())
        assert agent.calls == []

    def test_exit_with_whitespace_is_a_message(self):
        """Test that exit is only matched exactly."""
        session, agent, _ = self._session([[]], [" exit", "exit"])
        asyncio.run(session.run())
        assert agent.calls[0][0] == {"messages": [{"role": "user", "content": " exit"}]}

    def test_end_of_input_exits(self):
        """Test that EOF at the prompt ends the session."""
        session, agent, terminal = self._session([], [])
        asyncio.run(session.run())

        assert agent.calls == []
        assert "Bye" in terminal.text

    def test_turn_pauses_and_resumes(self):
        """Test that the prompt is paused for the whole turn."""
        runs = [
            [{"__interrupt__": (make_interrupt(APPROVAL, "i1"),)}],
            [{"model": {"messages": [AIMessage(content="sent")]}}],
        ]
        session, agent, terminal = self._session(runs, ["send hi", "yes", "exit"])

        asyncio.run(session.run())

        assert terminal.events == [
            ("question", "> "),
            "pause",
            ("question", "Do you approve this tool call? (y/n) "),
            "resume",
            ("question", "> "),
        ]
        assert len(agent.calls) == 2

    def test_single_interrupt_resumes_with_single_decision(self):
        """Test that one interrupt is resumed with a plain decision."""
        runs = [
            [{"__interrupt__": (make_interrupt(APPROVAL, "i1"),)}],
            [],
        ]
        session, agent, _ = self._session(runs, ["yes"])

        asyncio.run(session.run_turn("send hi"))

        resume_input = agent.calls[1][0]
        assert isinstance(resume_input, Command)
        assert resume_input.resume == {"authorized": True}

    def test_multiple_interrupts_resume_in_order(self):
        """Test that several interrupts are answered in the order raised."""
        runs = [
            [{"__interrupt__": (
                make_interrupt(APPROVAL, "i1"),
                make_interrupt(AUTH, "i2"),
                make_interrupt(APPROVAL, "i3"),
            )}],
            [],
        ]
        session, agent, _ = self._session(runs, ["no", "y"])

        asyncio.run(session.run_turn("do things"))

        resume = agent.calls[1][0].resume
        assert list(resume.items()) == [
            ("i1", {"authorized": False}),
            ("i2", {"authorized": True}),
            ("i3", {"authorized": True}),
        ]
        session.client.auth.wait_for_completion.assert_awaited_once_with("a1")

    def test_repeats_until_no_interrupts(self):
        """Test that resume cycles continue while interrupts keep coming."""
        runs = [
            [{"__interrupt__": (make_interrupt(AUTH, "i1"),)}],
            [{"__interrupt__": (make_interrupt(APPROVAL, "i2"),)}],
            [{"model": {"messages": [AIMessage(content="done")]}}],
        ]
        session, agent, terminal = self._session(runs, ["yes"])

        asyncio.run(session.run_turn("hello"))

        assert len(agent.calls) == 3
        assert agent.calls[0][0] == {"messages": [{"role": "user", "content": "hello"}]}
        assert agent.calls[1][0].resume == {"authorized": True}
        assert agent.calls[2][0].resume == {"authorized": True}
        assert "done" in terminal.text

    def test_turn_error_returns_to_prompt(self):
        """Test that an error during a turn is reported and the loop continues."""
        runs = [
            [RuntimeError("model unavailable")],
            [{"model": {"messages": [AIMessage(content="recovered")]}}],
        ]
        session, agent, terminal = self._session(runs, ["first", "second", "exit"])

        asyncio.run(session.run())

        assert len(agent.calls) == 2
        assert "model unavailable" in terminal.text
        assert "recovered" in terminal.text
        assert terminal.events.count("pause") == 2
        assert terminal.events.count("resume") == 2
        assert terminal.paused is False


class TestBuildAgent:
    """Test suite for build_agent."""

    def test_passes_config_to_create_agent(self):
        """Test that the model, prompt, tools and checkpointer are wired."""
        checkpointer = object()
        with patch.object(agent_module, "create_agent", return_value="agent") as create:
            result = build_agent(CONFIG, ["tool"], checkpointer=checkpointer)

        assert result == "agent"
        create.assert_called_once_with(
            model="openai:gpt-4o",
            tools=["tool"],
            system_prompt=CONFIG.system_prompt,
            checkpointer=checkpointer,
        )

    def test_default_checkpointer(self):
        """Test that an in-memory checkpointer is used by default."""
        with patch.object(agent_module, "create_agent") as create:
            build_agent(CONFIG, [])

        checkpointer = create.call_args.kwargs["checkpointer"]
        assert isinstance(checkpointer, MemorySaver)


class TestMain:
    """Test suite for the CLI entry point."""

    def test_missing_configuration_exits_before_fetching_tools(self, monkeypatch):
        """Test that missing settings stop startup before any tool fetch."""
        monkeypatch.delenv("ARCADE_USER_ID", raising=False)
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")

        with patch("dotenv.load_dotenv"), \
                patch("msteams_agent.utils.logging.setup_logging"), \
                patch.object(agent_module, "run_chat") as run_chat, \
                patch.object(agent_module, "Terminal", ScriptedTerminal):
            assert main([]) == 1

        run_chat.assert_not_called()

    def test_runs_chat_with_cli_overrides(self, monkeypatch):
        """Test that CLI flags override the environment."""
        monkeypatch.setenv("ARCADE_USER_ID", "user@example.com")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")

        with patch("dotenv.load_dotenv"), \
                patch("msteams_agent.utils.logging.setup_logging"), \
                patch.object(agent_module, "run_chat", new=AsyncMock()) as run_chat, \
                patch.object(agent_module, "Terminal", ScriptedTerminal):
            assert main(["--toolkit", "Slack", "--tool-limit", "5", "--thread-id", "t9"]) == 0

        config = run_chat.await_args.args[0]
        assert config.toolkits == ["Slack"]
        assert config.tool_limit == 5
        assert config.thread_id == "t9"
        assert config.user_id == "user@example.com"

    def test_config_file_below_cli_flags(self, monkeypatch, tmp_path):
        """Test that --config values override the environment but not CLI flags."""
        monkeypatch.setenv("ARCADE_USER_ID", "user@example.com")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        path = tmp_path / "agent.yaml"
        path.write_text("model: gpt-4.1\ntool_limit: 7\nthread_id: from-file\n")

        with patch("dotenv.load_dotenv"), \
                patch("msteams_agent.utils.logging.setup_logging"), \
                patch.object(agent_module, "run_chat", new=AsyncMock()) as run_chat, \
                patch.object(agent_module, "Terminal", ScriptedTerminal):
            assert main(["--config", str(path), "--thread-id", "t9"]) == 0

        config = run_chat.await_args.args[0]
        assert config.model == "gpt-4.1"
        assert config.tool_limit == 7
        assert config.thread_id == "t9"

    def test_invalid_config_file_exits(self, monkeypatch, tmp_path):
        """Test that a config file without a mapping stops startup."""
        monkeypatch.setenv("ARCADE_USER_ID", "user@example.com")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        path = tmp_path / "agent.json"
        path.write_text('["not", "a", "mapping"]')

        with patch("dotenv.load_dotenv"), \
                patch("msteams_agent.utils.logging.setup_logging"), \
                patch.object(agent_module, "run_chat") as run_chat, \
                patch.object(agent_module, "Terminal", ScriptedTerminal):
            assert main(["--config", str(path)]) == 1

        run_chat.assert_not_called()

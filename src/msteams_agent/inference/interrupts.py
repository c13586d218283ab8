"""
Interrupt handling for the chat session.

The agent pauses mid-turn with a LangGraph interrupt when a tool call needs
the user: either an OAuth authorization in the browser or an explicit
approval. Each interrupt is resolved to a ``Decision`` and the decisions are
sent back to the agent in a single resume ``Command``.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from langgraph.types import Command

from msteams_agent.inference.terminal import Terminal, confirm
from msteams_agent.utils.logging import get_logger

logger = get_logger("inference.interrupts")

STATUS = "⚙️:"
APPROVAL_QUESTION = "Do you approve this tool call?"


@dataclass(frozen=True)
class AuthorizationRequired:
    """A tool needs the user to finish an OAuth flow in the browser."""

    tool_name: str
    authorization_id: str
    url: Optional[str] = None


@dataclass(frozen=True)
class ApprovalRequired:
    """A tool call waits for the user to approve its input."""

    tool_name: str
    input: Any = None


@dataclass(frozen=True)
class UnknownInterrupt:
    """An interrupt whose payload matches no known shape."""

    payload: Any = None


InterruptRequest = Union[AuthorizationRequired, ApprovalRequired, UnknownInterrupt]


@dataclass(frozen=True)
class Decision:
    """Answer to one interrupt."""

    authorized: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {"authorized": self.authorized}


def _get(payload: Any, key: str, default: Any = None) -> Any:
    if isinstance(payload, Mapping):
        return payload.get(key, default)
    return getattr(payload, key, default)


def parse_interrupt(value: Any) -> InterruptRequest:
    """
    Classify an interrupt payload.

    Authorization takes precedence over approval; payloads carrying neither
    flag (or an authorization flag without an authorization id) are unknown.

    Args:
        value: ``Interrupt.value`` as raised by a tool

    Returns:
        The matching interrupt variant
    """
    if value is None:
        return UnknownInterrupt(value)

    if _get(value, "authorization_required"):
        response = _get(value, "authorization_response") or {}
        authorization_id = _get(response, "id")
        if authorization_id:
            return AuthorizationRequired(
                tool_name=_get(value, "tool_name", ""),
                authorization_id=authorization_id,
                url=_get(response, "url"),
            )
        return UnknownInterrupt(value)

    if _get(value, "hitl_required"):
        return ApprovalRequired(
            tool_name=_get(value, "tool_name", ""),
            input=_get(value, "input"),
        )

    return UnknownInterrupt(value)


async def wait_for_authorization(
    request: AuthorizationRequired,
    terminal: Terminal,
    client: Any
) -> Decision:
    """Block until Arcade reports the authorization finished."""
    terminal.print(STATUS, "Authorization required for tool call", request.tool_name, markup=False)
    terminal.print(STATUS, "Please authorize in your browser", request.url, markup=False)
    terminal.print(STATUS, "Waiting for you to complete authorization...", markup=False)
    try:
        await client.auth.wait_for_completion(request.authorization_id)
    except Exception as e:
        logger.error("Authorization %s failed: %s", request.authorization_id, e)
        terminal.print(
            STATUS, "Error waiting for authorization to complete:", str(e),
            style="red", markup=False,
        )
        return Decision(authorized=False)

    terminal.print(STATUS, "Authorization granted. Resuming execution...", markup=False)
    return Decision(authorized=True)


async def ask_approval(request: ApprovalRequired, terminal: Terminal) -> Decision:
    """Show the proposed call and let the user approve or deny it."""
    terminal.print(STATUS, "Human in the loop required for tool call", request.tool_name, markup=False)
    terminal.print(STATUS, "Please approve the tool call", request.input, markup=False)
    approved = await confirm(APPROVAL_QUESTION, terminal)
    if not approved:
        logger.info("User declined tool call %s", request.tool_name)
    return Decision(authorized=approved)


async def handle_interrupt(interrupt: Any, terminal: Terminal, client: Any) -> Decision:
    """
    Resolve one interrupt into a decision.

    Args:
        interrupt: LangGraph ``Interrupt`` (anything with a ``value``)
        terminal: Interactive handle for status lines and approvals
        client: Arcade client used to wait for authorization

    Returns:
        Decision for this interrupt
    """
    request = parse_interrupt(getattr(interrupt, "value", None))

    if isinstance(request, AuthorizationRequired):
        return await wait_for_authorization(request, terminal, client)
    if isinstance(request, ApprovalRequired):
        return await ask_approval(request, terminal)

    logger.warning("Unrecognized interrupt, denying by default: %r", request.payload)
    terminal.print(STATUS, "Unrecognized interrupt, continuing without authorization", style="yellow", markup=False)
    return Decision(authorized=False)


def build_resume_command(
    interrupts: Sequence[Any],
    decisions: Sequence[Decision]
) -> Command:
    """
    Wrap decisions into the command that resumes the agent.

    A single interrupt is resumed with its decision directly. Several
    interrupts are resumed with a mapping from interrupt id to decision whose
    order matches the order the interrupts were received.

    Raises:
        ValueError: If there is not exactly one decision per interrupt
    """
    if not decisions or len(interrupts) != len(decisions):
        raise ValueError(
            f"Expected one decision per interrupt, got {len(decisions)} "
            f"decisions for {len(interrupts)} interrupts"
        )

    if len(decisions) == 1:
        return Command(resume=decisions[0].to_dict())

    resume = {
        interrupt.id: decision.to_dict()
        for interrupt, decision in zip(interrupts, decisions)
    }
    if len(resume) != len(decisions):
        raise ValueError("Interrupt ids must be unique to resume several interrupts")
    return Command(resume=resume)


"""
Arcade tool provider.

Retrieves Microsoft Teams tool definitions from the Arcade platform and wraps
them as LangChain tools. The wrapped tools pause the agent with a LangGraph
``interrupt`` when a call needs OAuth authorization or explicit user approval,
and resume once the session loop sends back a decision.
"""

import json
from typing import Any, Iterable, Literal, Optional, Sequence

from arcadepy import AsyncArcade
from langchain_core.tools import StructuredTool, ToolException
from langgraph.types import interrupt
from pydantic import BaseModel, Field, create_model

from msteams_agent.utils.logging import get_logger

logger = get_logger("tools.provider")

# Arcade value types -> Python annotations for the argument schema
VALUE_TYPES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "json": dict[str, Any],
    "array": list,
}


def create_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None
) -> AsyncArcade:
    """
    Create an async Arcade client.

    Args:
        api_key: Arcade API key (default: ``ARCADE_API_KEY`` from the environment)
        base_url: Arcade engine URL (default: ``ARCADE_BASE_URL`` or the cloud engine)

    Returns:
        AsyncArcade client
    """
    kwargs: dict[str, Any] = {}
    if api_key:
        kwargs["api_key"] = api_key
    if base_url:
        kwargs["base_url"] = base_url
    return AsyncArcade(**kwargs)


def tool_name(definition: Any) -> str:
    """LangChain-safe name of an Arcade tool, e.g. ``MicrosoftTeams_ListChats``."""
    qualified = getattr(definition, "qualified_name", None) or definition.name
    return qualified.replace(".", "_")


def _annotation(value_schema: Any) -> Any:
    """Python annotation for one Arcade parameter value schema."""
    enum = getattr(value_schema, "enum", None)
    if enum:
        return Literal[tuple(enum)]

    val_type = getattr(value_schema, "val_type", "string")
    if val_type == "array":
        inner = VALUE_TYPES.get(getattr(value_schema, "inner_val_type", None) or "", Any)
        return list[inner]
    return VALUE_TYPES.get(val_type, Any)


def build_args_schema(definition: Any) -> type[BaseModel]:
    """
    Build a pydantic argument schema from an Arcade tool definition.

    Args:
        definition: Arcade ``ToolDefinition``

    Returns:
        Pydantic model class describing the tool's input
    """
    fields: dict[str, Any] = {}
    tool_input = getattr(definition, "input", None)
    for param in getattr(tool_input, "parameters", None) or []:
        annotation = _annotation(param.value_schema)
        description = param.description or ""
        if param.required:
            fields[param.name] = (annotation, Field(..., description=description))
        else:
            fields[param.name] = (
                Optional[annotation],
                Field(default=None, description=description),
            )

    return create_model(f"{tool_name(definition)}Args", **fields)


def requires_authorization(definition: Any) -> bool:
    """Whether Arcade must authorize the user before the tool can run."""
    requirements = getattr(definition, "requirements", None)
    return bool(requirements is not None and getattr(requirements, "authorization", None))


def _format_output(value: Any) -> str:
    """Tool output as text for the model."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def to_langchain_tool(
    definition: Any,
    client: AsyncArcade,
    user_id: str,
    require_approval: bool = False
) -> StructuredTool:
    """
    Wrap an Arcade tool definition as a LangChain tool.

    The returned tool must run inside a LangGraph graph, since it may call
    ``interrupt`` for authorization or approval.

    Args:
        definition: Arcade ``ToolDefinition``
        client: Arcade client used to authorize and execute the tool
        user_id: Identity the tool acts on behalf of
        require_approval: Ask the user to approve each call before executing

    Returns:
        StructuredTool bound to the Arcade tool
    """
    name = tool_name(definition)
    arcade_name = getattr(definition, "qualified_name", None) or definition.name
    needs_auth = requires_authorization(definition)

    async def _call(**kwargs: Any) -> str:
        # Resume values are matched to interrupts by position, so the
        # approval interrupt (always raised) must come before the
        # authorization interrupt (raised only while authorization is pending).
        if require_approval:
            decision = interrupt({
                "hitl_required": True,
                "tool_name": name,
                "input": kwargs,
            })
            if not _is_authorized(decision):
                logger.info("User declined tool call %s", name)
                return f"The user declined the call to {name}. The tool was not run."

        if needs_auth:
            auth = await client.tools.authorize(tool_name=arcade_name, user_id=user_id)
            if auth.status != "completed":
                decision = interrupt({
                    "authorization_required": True,
                    "tool_name": name,
                    "authorization_response": {"id": auth.id, "url": auth.url},
                })
                if not _is_authorized(decision):
                    logger.info("Authorization for %s was not granted", name)
                    return f"The user did not authorize {name}. The tool was not run."

        logger.debug("Executing %s with %s", arcade_name, kwargs)
        response = await client.tools.execute(
            tool_name=arcade_name,
            input=kwargs,
            user_id=user_id,
        )

        output = getattr(response, "output", None)
        if not response.success or getattr(output, "error", None) is not None:
            error = getattr(output, "error", None)
            message = getattr(error, "message", None) or f"{name} failed"
            raise ToolException(message)

        return _format_output(getattr(output, "value", None))

    return StructuredTool.from_function(
        coroutine=_call,
        name=name,
        description=definition.description or name,
        args_schema=build_args_schema(definition),
        infer_schema=False,
        handle_tool_error=True,
    )


def _is_authorized(decision: Any) -> bool:
    """Read the ``authorized`` flag from a resume value."""
    if isinstance(decision, dict):
        return bool(decision.get("authorized"))
    return bool(getattr(decision, "authorized", False))


async def fetch_definitions(
    client: AsyncArcade,
    *,
    toolkits: Iterable[str],
    tools: Iterable[str],
    user_id: str,
    limit: int
) -> list[Any]:
    """
    Fetch tool definitions for the named toolkits and individual tools.

    Toolkit tools come first, then individually named tools. Duplicates are
    dropped and the result is capped at ``limit`` definitions.

    Raises:
        ValueError: If ``user_id`` is empty
    """
    if not user_id:
        raise ValueError("A user id is required to retrieve Arcade tools")

    definitions: list[Any] = []
    seen: set[str] = set()

    def _add(definition: Any) -> bool:
        key = tool_name(definition)
        if key not in seen:
            seen.add(key)
            definitions.append(definition)
        return len(definitions) >= limit

    for toolkit in toolkits:
        async for definition in client.tools.list(
            toolkit=toolkit, user_id=user_id, limit=limit
        ):
            if _add(definition):
                return definitions
        logger.debug("Fetched toolkit %s (%d tools so far)", toolkit, len(definitions))

    for name in tools:
        definition = await client.tools.get(name=name, user_id=user_id)
        if _add(definition):
            return definitions

    return definitions


async def get_tools(
    client: AsyncArcade,
    *,
    toolkits: Iterable[str] = (),
    tools: Iterable[str] = (),
    user_id: str,
    limit: int = 100,
    approval_tools: Sequence[str] = ()
) -> list[StructuredTool]:
    """
    Retrieve Arcade tools as LangChain tools acting for ``user_id``.

    Args:
        client: Arcade client
        toolkits: Toolkits whose tools are all included
        tools: Individually named tools, e.g. ``MicrosoftTeams.ListChats``
        user_id: Identity the tools act on behalf of
        limit: Maximum number of tools returned
        approval_tools: Tool names (either ``Toolkit.Tool`` or ``Toolkit_Tool``)
            that need user approval before each call

    Returns:
        List of LangChain tools

    Raises:
        ValueError: If ``user_id`` is empty
    """
    definitions = await fetch_definitions(
        client,
        toolkits=toolkits,
        tools=tools,
        user_id=user_id,
        limit=limit,
    )

    approval = {name.replace(".", "_") for name in approval_tools}
    wrapped = [
        to_langchain_tool(
            definition,
            client,
            user_id,
            require_approval=tool_name(definition) in approval,
        )
        for definition in definitions
    ]

    logger.info("Loaded %d Arcade tools for user %s", len(wrapped), user_id)
    return wrapped

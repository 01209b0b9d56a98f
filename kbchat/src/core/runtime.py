"""
kbchat - Conversational Runtime
================================
Binds the language-model adapter (an Azure OpenAI chat deployment via
LangChain) to the registered actions and runs one conversation turn.

Turn flow
---------
    1. Prepend the system prompt to the client's message history.
    2. Call the model with the actions bound as tools.
    3. No tool calls → the reply is the answer.  Unparseable tool calls
       are answered with an error tool result so the model can retry.
    4. Tool calls → run each action, append its result as a
       ``ToolMessage``, and call the model again.
    5. After ``MAX_ACTION_ROUNDS`` rounds the model is called once more
       *without* tools to force a final answer.

The runtime keeps no per-conversation state; the client sends the full
history with every request.

Usage:
    from kbchat.src.core.runtime import ChatRuntime, build_chat_model
    runtime = ChatRuntime(build_chat_model(settings), [retriever.as_tool()])
    turn = await runtime.respond([HumanMessage(content="How do I reset my password?")])
"""

from __future__ import annotations

import json
import time
from collections.abc import Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage, ToolMessage
from langchain_core.tools import BaseTool
from langchain_openai import AzureChatOpenAI
from pydantic import BaseModel, Field

from kbchat.config.prompt_templates import MALFORMED_ACTION_CALL_MESSAGE, SYSTEM_PROMPT, UNKNOWN_ACTION_MESSAGE
from kbchat.config.settings import Settings
from kbchat.src.utils.logger import get_logger

logger = get_logger(__name__)


class ActionExecution(BaseModel):
    """One action call made by the model during a turn."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: str


class ChatTurn(BaseModel):
    """Outcome of ``ChatRuntime.respond``."""

    answer: str
    actions: list[ActionExecution] = Field(default_factory=list)


def build_chat_model(settings: Settings) -> AzureChatOpenAI:
    """Create the Azure OpenAI chat model for the configured deployment."""
    llm = AzureChatOpenAI(
        azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
        azure_deployment=settings.AZURE_OPENAI_DEPLOYMENT_NAME,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        api_key=settings.AZURE_OPENAI_API_KEY,
        temperature=settings.LLM_TEMPERATURE,
    )
    logger.info("LLM initialised: deployment '%s' (api-version %s, temperature=%.1f)", settings.AZURE_OPENAI_DEPLOYMENT_NAME, settings.AZURE_OPENAI_API_VERSION, settings.LLM_TEMPERATURE)
    return llm


def _content_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = [part if isinstance(part, str) else str(part.get("text", "")) for part in content]
    return "".join(parts)


def _stringify(output: object) -> str:
    if isinstance(output, ToolMessage):
        return _content_text(output)
    if isinstance(output, str):
        return output
    return json.dumps(output, ensure_ascii=False, default=str)


class ChatRuntime:
    """
    Runs conversation turns against a tool-calling chat model.

    Parameters
    ----------
    llm
        Any LangChain chat model that supports ``bind_tools``.
    actions
        Tools the model may call.  Names must be unique.
    max_action_rounds
        Upper bound on model→tool round trips per turn.
    system_prompt
        Prepended to every conversation.
    """

    __slots__ = ("_llm", "_llm_with_tools", "_actions", "_max_rounds", "_system_prompt")

    def __init__(self, llm: BaseChatModel, actions: Sequence[BaseTool], max_action_rounds: int = 5, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._actions: dict[str, BaseTool] = {}
        for action in actions:
            if action.name in self._actions:
                raise ValueError(f"Duplicate action name: {action.name}")
            self._actions[action.name] = action

        self._llm = llm
        self._llm_with_tools = llm.bind_tools(list(self._actions.values())) if self._actions else llm
        self._max_rounds = max_action_rounds
        self._system_prompt = system_prompt


    @property
    def action_names(self) -> list[str]:
        return list(self._actions)


    async def respond(self, messages: Sequence[BaseMessage]) -> ChatTurn:
        """
        Run one turn over *messages* and return the assistant's answer.

        Model errors propagate; action errors are reported back to the
        model as tool results.
        """
        t_start = time.perf_counter()
        conversation: list[BaseMessage] = [SystemMessage(content=self._system_prompt), *messages]
        executions: list[ActionExecution] = []

        for round_no in range(1, self._max_rounds + 1):
            reply = await self._llm_with_tools.ainvoke(conversation)
            conversation.append(reply)

            tool_calls = reply.tool_calls if isinstance(reply, AIMessage) else []
            invalid_calls = reply.invalid_tool_calls if isinstance(reply, AIMessage) else []
            if not tool_calls and not invalid_calls:
                logger.info("[RUNTIME] Turn complete in %.1fms after %d round(s), %d action call(s).", (time.perf_counter() - t_start) * 1000, round_no, len(executions))
                return ChatTurn(answer=_content_text(reply), actions=executions)

            for call in invalid_calls:
                name = call.get("name") or "unknown"
                logger.warning("[RUNTIME] Malformed call to action '%s': %s", name, call.get("error"))
                result = MALFORMED_ACTION_CALL_MESSAGE.format(name=name, error=call.get("error") or "invalid JSON")
                conversation.append(ToolMessage(content=result, tool_call_id=call.get("id") or "", name=name))
                executions.append(ActionExecution(name=name, result=result))

            for call in tool_calls:
                result = await self._execute(call["name"], call.get("args") or {})
                conversation.append(ToolMessage(content=result, tool_call_id=call.get("id") or "", name=call["name"]))
                executions.append(ActionExecution(name=call["name"], arguments=call.get("args") or {}, result=result))

        logger.warning("[RUNTIME] Action round limit (%d) reached; forcing a final answer.", self._max_rounds)
        reply = await self._llm.ainvoke(conversation)
        return ChatTurn(answer=_content_text(reply), actions=executions)


    async def _execute(self, name: str, arguments: dict[str, Any]) -> str:
        """Run one action; unknown names yield an explanatory tool result."""
        action = self._actions.get(name)
        if action is None:
            logger.warning("[RUNTIME] Model requested unknown action '%s'.", name)
            return UNKNOWN_ACTION_MESSAGE.format(name=name, available=", ".join(self._actions) or "none")

        t_action = time.perf_counter()
        output = await action.ainvoke(arguments)
        logger.info("[RUNTIME] Action '%s' finished in %.1fms.", name, (time.perf_counter() - t_action) * 1000)
        return _stringify(output)

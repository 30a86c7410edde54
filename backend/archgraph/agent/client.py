import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from archgraph.agent.executor import FunctionCall, FunctionCallOutcome, execute_function_call
from archgraph.agent.tools import chat_tools
from archgraph.config import (
    AGENT_MAX_ROUNDS,
    LLM_API_KEY,
    LLM_BASE_URL,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_TIMEOUT,
)
from archgraph.graph.model import GraphNode
from archgraph.utils.json_extract import strip_fences

logger = logging.getLogger(__name__)

class LLMResponseError(requests.RequestException):
    """The provider answered, but not with a chat completion."""


SYSTEM_PROMPT = (
    "You build cloud architecture diagrams by calling the provided functions. "
    "Call display_elk_graph first to see the current graph, then change it with "
    "batch_update or the single-operation functions. Node and edge ids must be "
    "unique. Reply with plain text only when the diagram is complete."
)


class ChatCompletionsClient:
    """OpenAI-compatible /chat/completions client."""

    def __init__(
        self,
        base_url: str = LLM_BASE_URL,
        model: str = LLM_MODEL,
        temperature: float = LLM_TEMPERATURE,
        api_key: str = LLM_API_KEY,
        timeout: int = LLM_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def complete(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """One round trip; returns the assistant message (content and/or tool_calls)."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"

        response = requests.post(
            f"{self.base_url}/chat/completions",
            json=payload,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()

        try:
            message = response.json()["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LLMResponseError(f"Unexpected chat completion body: {response.text[:200]}", response=response) from exc
        if not isinstance(message, dict):
            raise LLMResponseError("Chat completion message is not an object", response=response)
        return message

    def generate(self, messages: List[Dict[str, Any]]) -> str:
        content = self.complete(messages).get("content") or ""
        return strip_fences(content)


@dataclass
class AgentTurn:
    graph: GraphNode
    messages: List[Dict[str, Any]]
    reply: Optional[str] = None
    outcomes: List[FunctionCallOutcome] = field(default_factory=list)
    rounds: int = 0


class ArchitectureAgent:
    """
    Drives the model through one user turn.

    Each round sends the conversation plus the tool catalog; every tool call
    in the answer is executed against the current graph and its outcome is
    appended as a ``tool`` message. The turn ends when the model answers
    without tool calls or after ``max_rounds`` rounds.
    """

    def __init__(self, client: Optional[ChatCompletionsClient] = None, max_rounds: int = AGENT_MAX_ROUNDS):
        self.client = client or ChatCompletionsClient()
        self.max_rounds = max_rounds

    def run_turn(self, messages: List[Dict[str, Any]], tree: GraphNode) -> AgentTurn:
        history = list(messages)
        if not history or history[0].get("role") != "system":
            history.insert(0, {"role": "system", "content": SYSTEM_PROMPT})

        turn = AgentTurn(graph=tree, messages=history)
        tools = chat_tools()

        while turn.rounds < self.max_rounds:
            turn.rounds += 1
            message = self.client.complete(history, tools=tools)
            tool_calls = message.get("tool_calls") or []
            history.append({
                "role": "assistant",
                "content": message.get("content"),
                **({"tool_calls": tool_calls} if tool_calls else {}),
            })

            if not tool_calls:
                turn.reply = strip_fences(message.get("content") or "")
                logger.info("[AGENT] Turn finished after %d round(s)", turn.rounds)
                return turn

            for tool_call in tool_calls:
                function = tool_call.get("function") or {}
                call = FunctionCall(
                    name=function.get("name", ""),
                    arguments=function.get("arguments"),
                    call_id=tool_call.get("id"),
                )
                outcome = execute_function_call(call, turn.graph)
                turn.graph = outcome.graph
                turn.outcomes.append(outcome)
                history.append(outcome.to_tool_message(call.call_id))

        logger.warning("[AGENT] Stopped after reaching %d round(s)", self.max_rounds)
        return turn

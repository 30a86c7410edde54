"""
Agent layer: tool catalog, function-call execution and the chat-completions
client that drives the graph engine.
"""

from archgraph.agent.tools import TOOL_CATALOG, chat_tools
from archgraph.agent.executor import FunctionCall, FunctionCallOutcome, execute_function_call, summarize_graph
from archgraph.agent.client import AgentTurn, ArchitectureAgent, ChatCompletionsClient, LLMResponseError

__all__ = [
    "TOOL_CATALOG",
    "chat_tools",
    "FunctionCall",
    "FunctionCallOutcome",
    "execute_function_call",
    "summarize_graph",
    "AgentTurn",
    "ArchitectureAgent",
    "ChatCompletionsClient",
    "LLMResponseError",
]

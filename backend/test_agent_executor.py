"""Function-call execution, argument parsing and the agent loop"""

import json

import pytest
import requests

from archgraph.agent.client import ArchitectureAgent, ChatCompletionsClient, LLMResponseError
from archgraph.agent.executor import FunctionCall, execute_function_call, summarize_graph
from archgraph.agent.tools import TOOL_CATALOG, chat_tools, tool_names
from archgraph.graph.batch import OPERATIONS
from archgraph.graph.lookup import find_node_by_id, find_parent_of_node
from archgraph.utils.json_extract import load_json_object


# ============================================================
# Argument parsing
# ============================================================

def test_load_json_object_variants():
    assert load_json_object({"a": 1}) == {"a": 1}
    assert load_json_object('{"a": 1}') == {"a": 1}
    assert load_json_object('```json\n{"a": 1}\n```') == {"a": 1}
    assert load_json_object('Sure! {"a": 1} hope that helps') == {"a": 1}
    assert load_json_object("not json") == {}
    assert load_json_object("[1, 2]") == {}
    assert load_json_object(None) == {}


# ============================================================
# Tool catalog
# ============================================================

def test_catalog_covers_every_operation():
    names = tool_names()
    assert set(OPERATIONS) <= set(names)
    assert {"display_elk_graph", "batch_update"} <= set(names)
    assert len(chat_tools()) == len(TOOL_CATALOG)
    assert chat_tools()[0]["type"] == "function"


# ============================================================
# execute_function_call
# ============================================================

def test_successful_call_returns_new_graph(sample_tree):
    call = FunctionCall(name="add_node", arguments=json.dumps({"nodename": "cache", "parentId": "aws"}))

    outcome = execute_function_call(call, sample_tree)

    assert outcome.success
    assert outcome.call is call
    assert find_parent_of_node(outcome.graph, "cache").id == "aws"
    assert outcome.output["graph"]["nodeCount"] == 15
    assert "Continue building" in outcome.output["instruction"]


def test_failed_call_reports_error_and_keeps_graph(sample_tree):
    call = FunctionCall(name="add_node", arguments={"nodename": "cache", "parentId": "nonexistent"})

    outcome = execute_function_call(call, sample_tree)

    assert not outcome.success
    assert outcome.graph is sample_tree
    assert outcome.output["error"] == "Parent node 'nonexistent' not found"
    assert outcome.output["code"] == "REFERENCE_NOT_FOUND"
    assert outcome.output["graph"]["nodeCount"] == 14
    assert "retry" in outcome.output["instruction"]


def test_unknown_function(sample_tree):
    outcome = execute_function_call(FunctionCall(name="paint_it_red"), sample_tree)

    assert not outcome.success
    assert outcome.output["code"] == "UNKNOWN_OPERATION"


def test_display_graph(sample_tree):
    outcome = execute_function_call(FunctionCall(name="display_elk_graph"), sample_tree)

    assert outcome.success
    assert outcome.graph is sample_tree
    assert outcome.output["graph"]["structure"]["id"] == "root"


def test_batch_call_with_partial_failure(sample_tree):
    call = FunctionCall(name="batch_update", arguments={"operations": [
        {"name": "add_node", "nodename": "cache", "parentId": "aws"},
        {"name": "add_node", "nodename": "broken", "parentId": "nonexistent"},
    ]})

    outcome = execute_function_call(call, sample_tree)

    assert not outcome.success
    assert outcome.batch is not None
    assert find_node_by_id(outcome.graph, "cache") is not None
    assert outcome.output["message"].startswith("1 succeeded, 1 failed")
    assert [r["status"] for r in outcome.output["results"]] == ["success", "error"]
    assert "Retry only the failed operations" in outcome.output["instruction"]


def test_batch_call_without_operations(sample_tree):
    outcome = execute_function_call(FunctionCall(name="batch_update", arguments="{}"), sample_tree)

    assert not outcome.success
    assert outcome.output["code"] == "INVALID_ARGUMENTS"


@pytest.mark.parametrize("name, arguments", [
    ("add_node", {"nodename": "cache", "parentId": "aws", "data": "redis"}),
    ("add_node", {"nodename": 5, "parentId": "aws"}),
    ("group_nodes", {"nodeIds": [1, "ghost"], "parentId": "aws", "groupId": "g"}),
])
def test_malformed_arguments_are_reported_for_retry(sample_tree, name, arguments):
    outcome = execute_function_call(FunctionCall(name=name, arguments=json.dumps(arguments)), sample_tree)

    assert not outcome.success
    assert outcome.graph is sample_tree
    assert outcome.output["code"] == "INVALID_ARGUMENTS"
    assert "retry" in outcome.output["instruction"]


def test_batch_call_with_malformed_operation(sample_tree):
    call = FunctionCall(name="batch_update", arguments={"operations": [
        {"name": "add_node", "nodename": "cache", "parentId": "aws", "data": "redis"},
        {"name": "add_node", "nodename": "queue", "parentId": "aws"},
    ]})

    outcome = execute_function_call(call, sample_tree)

    assert [r["code"] for r in outcome.output["results"]] == ["INVALID_ARGUMENTS", None]
    assert find_node_by_id(outcome.graph, "queue") is not None
    assert find_node_by_id(outcome.graph, "cache") is None


def test_summarize_graph(sample_tree):
    summary = summarize_graph(sample_tree)

    assert (summary["nodeCount"], summary["groupCount"], summary["edgeCount"]) == (14, 4, 10)
    query = next(n for n in summary["nodes"] if n["id"] == "query")
    assert query["parentId"] == "lambda"
    e6 = next(e for e in summary["edges"] if e["id"] == "e6")
    assert e6["hostId"] == "lambda"


def test_tool_message_shape(sample_tree):
    outcome = execute_function_call(FunctionCall(name="display_elk_graph"), sample_tree)

    message = outcome.to_tool_message("call_1")

    assert message["role"] == "tool"
    assert message["tool_call_id"] == "call_1"
    assert json.loads(message["content"])["success"] is True


# ============================================================
# Agent loop
# ============================================================

class ScriptedClient:
    def __init__(self, replies):
        self.replies = list(replies)
        self.requests = []

    def complete(self, messages, tools=None):
        self.requests.append(list(messages))
        return self.replies.pop(0)


def tool_call(call_id, name, arguments):
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": json.dumps(arguments)}}


def test_agent_runs_tool_calls_until_plain_reply(sample_tree):
    client = ScriptedClient([
        {"content": None, "tool_calls": [
            tool_call("c1", "add_node", {"nodename": "cache", "parentId": "aws"}),
            tool_call("c2", "add_edge", {"edgeId": "e_cache", "sourceId": "api", "targetId": "cache"}),
        ]},
        {"content": "Added a cache."},
    ])

    turn = ArchitectureAgent(client=client, max_rounds=5).run_turn(
        [{"role": "user", "content": "add a cache"}], sample_tree,
    )

    assert turn.reply == "Added a cache."
    assert turn.rounds == 2
    assert [o.success for o in turn.outcomes] == [True, True]
    assert find_node_by_id(turn.graph, "cache") is not None
    assert find_node_by_id(sample_tree, "cache") is None

    second_request = client.requests[1]
    assert second_request[0]["role"] == "system"
    assert [m["role"] for m in second_request[-2:]] == ["tool", "tool"]
    assert second_request[-1]["tool_call_id"] == "c2"


def test_agent_stops_after_max_rounds(sample_tree):
    looping = {"content": None, "tool_calls": [tool_call("c", "display_elk_graph", {})]}
    client = ScriptedClient([looping] * 3)

    turn = ArchitectureAgent(client=client, max_rounds=3).run_turn(
        [{"role": "user", "content": "hi"}], sample_tree,
    )

    assert turn.rounds == 3
    assert turn.reply is None
    assert len(turn.outcomes) == 3


# ============================================================
# Chat-completions client
# ============================================================

class FakeResponse:
    def __init__(self, text):
        self.text = text

    def raise_for_status(self):
        pass

    def json(self):
        return json.loads(self.text)


@pytest.mark.parametrize("body", [
    '{"error": {"message": "rate limited"}}',
    '{"choices": []}',
    "<html>bad gateway</html>",
])
def test_client_rejects_bodies_that_are_not_completions(monkeypatch, body):
    monkeypatch.setattr(requests, "post", lambda *args, **kwargs: FakeResponse(body))
    client = ChatCompletionsClient(base_url="http://llm.test/v1")

    with pytest.raises(LLMResponseError) as exc_info:
        client.complete([{"role": "user", "content": "hi"}])

    assert isinstance(exc_info.value, requests.RequestException)


def test_client_returns_assistant_message(monkeypatch):
    body = json.dumps({"choices": [{"message": {"role": "assistant", "content": "done"}}]})
    monkeypatch.setattr(requests, "post", lambda *args, **kwargs: FakeResponse(body))

    message = ChatCompletionsClient(base_url="http://llm.test/v1").complete([])

    assert message["content"] == "done"

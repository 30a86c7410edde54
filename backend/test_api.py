"""HTTP API"""

import requests

from archgraph.agent.client import ArchitectureAgent, ChatCompletionsClient
from archgraph.api import routes
from archgraph.layout.coordinator import LayoutCoordinator
from test_layout import FakeElk


def create(client, **body):
    response = client.post("/graphs", json=body)
    assert response.status_code == 200
    return response.json()


def test_create_empty_and_default_graphs(client):
    empty = create(client)
    assert empty["version"] == 0
    assert empty["graph"]["id"] == "root"
    assert empty["graph"]["children"] == []

    default = create(client, use_default=True)
    assert [c["id"] for c in default["graph"]["children"]] == ["ui", "aws", "openai"]


def test_create_rejects_malformed_graph(client):
    response = client.post("/graphs", json={"graph": {"id": "root", "children": [{"labels": []}]}})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INVALID_GRAPH"
    assert "graph.children[0].id" in response.json()["error"]["message"]


def test_get_graph_and_unknown_graph(client):
    created = create(client, use_default=True)

    response = client.get(f"/graphs/{created['id']}")
    assert response.status_code == 200
    assert response.json()["summary"]["edges"] == 10

    assert client.get("/graphs/missing").status_code == 404


def test_apply_operation_persists_and_logs(client):
    created = create(client, use_default=True)
    graph_id = created["id"]

    response = client.post(f"/graphs/{graph_id}/operations", json={
        "name": "move_node",
        "arguments": {"nodeId": "webapp", "newParentId": "aws"},
        "expected_version": 0,
    })

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["version"] == 1

    graph = client.get(f"/graphs/{graph_id}").json()["graph"]
    aws = next(c for c in graph["children"] if c["id"] == "aws")
    assert "e0" in [e["id"] for e in aws["edges"]]

    log = client.get(f"/graphs/{graph_id}/operations").json()["operations"]
    assert [(op["name"], op["status"], op["version"]) for op in log] == [("move_node", "success", 1)]


def test_failed_operation_is_reported_not_saved(client):
    created = create(client, use_default=True)

    body = client.post(f"/graphs/{created['id']}/operations", json={
        "name": "add_node",
        "arguments": '{"nodename": "cache", "parentId": "nonexistent"}',
    }).json()

    assert body["success"] is False
    assert body["version"] == 0
    assert body["output"]["error"] == "Parent node 'nonexistent' not found"


def test_malformed_operation_arguments_are_reported_not_raised(client):
    created = create(client, use_default=True)

    response = client.post(f"/graphs/{created['id']}/operations", json={
        "name": "group_nodes",
        "arguments": {"nodeIds": [1, "ghost"], "parentId": "aws", "groupId": "g"},
    })

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["output"]["code"] == "INVALID_ARGUMENTS"
    assert response.json()["version"] == 0


def test_stale_expected_version(client):
    created = create(client, use_default=True)

    response = client.post(f"/graphs/{created['id']}/operations", json={
        "name": "delete_node",
        "arguments": {"nodeId": "openai"},
        "expected_version": 7,
    })

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "STALE_VERSION"


def test_batch_endpoint(client):
    created = create(client, use_default=True)

    body = client.post(f"/graphs/{created['id']}/batch", json={"operations": [
        {"name": "group_nodes", "nodeIds": ["vector", "storage"], "parentId": "aws", "groupId": "dataStore"},
        {"name": "add_node", "nodename": "x", "parentId": "nonexistent"},
    ]}).json()

    assert body["version"] == 1
    assert body["summary"].startswith("1 succeeded, 1 failed")
    assert [r["status"] for r in body["results"]] == ["success", "error"]


def test_validate_and_fix_endpoints(client):
    created = create(client, graph={
        "id": "root",
        "children": [{"id": "a", "children": [{"id": "a1"}, {"id": "a2"}]}],
        "edges": [{"id": "e1", "sources": ["a1"], "targets": ["a2"]}],
    })
    graph_id = created["id"]

    report = client.get(f"/graphs/{graph_id}/validate").json()
    assert report["is_valid"] is False
    assert "MISPLACED_EDGE" in [i["code"] for i in report["issues"]]

    fixed = client.post(f"/graphs/{graph_id}/fix").json()
    assert fixed["fix"]["success"] is True
    assert fixed["version"] == 1
    assert client.get(f"/graphs/{graph_id}/validate").json()["is_valid"] is True


def test_elk_endpoint(client):
    created = create(client, use_default=True)

    body = client.get(f"/graphs/{created['id']}/elk", params={"direction": "DOWN"}).json()
    assert body["graph"]["layoutOptions"]["elk.direction"] == "DOWN"
    assert len(body["structural_hash"]) == 64

    assert client.get(f"/graphs/{created['id']}/elk", params={"direction": "diagonal"}).status_code == 422


def test_layout_endpoint(app, client):
    app.dependency_overrides[routes.get_coordinator] = lambda: LayoutCoordinator(client=FakeElk(), timeout=5)
    created = create(client, use_default=True)

    body = client.post(f"/graphs/{created['id']}/layout", json={"direction": "RIGHT"}).json()

    assert body["version"] == 1
    aws = next(c for c in body["graph"]["children"] if c["id"] == "aws")
    assert aws["x"] == 10


class BrokenElk:
    def layout(self, elk_graph):
        return {"id": "root", "children": [{"x": 0, "y": 0}]}


def test_layout_endpoint_reports_malformed_answer(app, client):
    app.dependency_overrides[routes.get_coordinator] = lambda: LayoutCoordinator(client=BrokenElk(), timeout=5)
    created = create(client, use_default=True)

    response = client.post(f"/graphs/{created['id']}/layout", json={})

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "LAYOUT_FAILED"
    assert client.get(f"/graphs/{created['id']}").json()["version"] == 0


class ScriptedAgent:
    def __init__(self, operations):
        self.operations = operations

    def run_turn(self, messages, tree):
        from archgraph.agent.client import AgentTurn
        from archgraph.agent.executor import FunctionCall, execute_function_call

        turn = AgentTurn(graph=tree, messages=messages, reply="done", rounds=1)
        for name, args in self.operations:
            outcome = execute_function_call(FunctionCall(name=name, arguments=args), turn.graph)
            turn.graph = outcome.graph
            turn.outcomes.append(outcome)
        return turn


def test_chat_endpoint(app, client):
    app.dependency_overrides[routes.get_agent] = lambda: ScriptedAgent([
        ("add_node", {"nodename": "cache", "parentId": "aws"}),
        ("delete_node", {"nodeId": "ghost"}),
    ])
    created = create(client, use_default=True)

    body = client.post(f"/graphs/{created['id']}/chat", json={"message": "add a cache"}).json()

    assert body["reply"] == "done"
    assert body["version"] == 1
    assert [op["success"] for op in body["operations"]] == [True, False]
    log = client.get(f"/graphs/{created['id']}/operations").json()["operations"]
    assert [op["status"] for op in log] == ["success", "error"]


class ErrorBodyResponse:
    text = '{"error": {"message": "model overloaded"}}'

    def raise_for_status(self):
        pass

    def json(self):
        return {"error": {"message": "model overloaded"}}


def test_chat_endpoint_maps_provider_error_body_to_bad_gateway(app, client, monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *args, **kwargs: ErrorBodyResponse())
    app.dependency_overrides[routes.get_agent] = lambda: ArchitectureAgent(
        client=ChatCompletionsClient(base_url="http://llm.test/v1"),
    )
    created = create(client, use_default=True)

    response = client.post(f"/graphs/{created['id']}/chat", json={"message": "add a cache"})

    assert response.status_code == 502
    assert "Unexpected chat completion body" in response.json()["detail"]


def test_tools_endpoint(client):
    names = [tool["name"] for tool in client.get("/tools").json()["tools"]]
    assert "batch_update" in names

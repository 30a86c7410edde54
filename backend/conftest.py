"""Shared fixtures for the archgraph test suite"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from archgraph.api import routes
from archgraph.db.models import Base
from archgraph.db.store import GraphSessionStore
from archgraph.graph.model import GraphNode
from archgraph.graph.sample import default_architecture
from archgraph.main import create_app


def make_tree(data: dict) -> GraphNode:
    return GraphNode.from_dict(data)


def node(node_id, children=None, edges=None):
    data = {"id": node_id, "labels": [{"text": node_id}]}
    if children:
        data["children"] = children
    if edges:
        data["edges"] = edges
    return data


def edge(edge_id, source, target):
    return {"id": edge_id, "sources": [source], "targets": [target]}


@pytest.fixture
def sample_tree() -> GraphNode:
    """ui / aws / openai starter architecture"""
    return default_architecture()


@pytest.fixture
def small_tree() -> GraphNode:
    #  root
    #  ├── a
    #  │   ├── a1
    #  │   └── a2
    #  └── b
    #      └── b1
    return make_tree(node("root", children=[
        node("a", children=[node("a1"), node("a2")], edges=[edge("e_a", "a1", "a2")]),
        node("b", children=[node("b1")]),
    ], edges=[edge("e_root", "a1", "b1")]))


@pytest.fixture
def store() -> GraphSessionStore:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield GraphSessionStore(sessionmaker(bind=engine, autocommit=False, autoflush=False))
    engine.dispose()


@pytest.fixture
def app(store):
    application = create_app(init_db=False)
    application.dependency_overrides[routes.get_store] = lambda: store
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)

"""
ARKHAM Test Configuration and Fixtures

Provides a fresh store, a node factory and a small sample scenario that
exercises every node family (events, elements, variables, branches, a
group with a child and a sticky note).
"""

import copy

import pytest

from arkham.core.dataclasses import Node, NodeData, Position
from arkham.core.enums import NodeType
from arkham.store import GraphStore


SAMPLE_SCENARIO = {
    "nodes": [
        {
            "id": "start",
            "type": "event",
            "position": {"x": 0, "y": 0},
            "data": {"label": "Opening", "isStart": True, "description": "You wake up."},
        },
        {
            "id": "key",
            "type": "element",
            "position": {"x": 0, "y": 100},
            "data": {
                "label": "Find key",
                "infoType": "item",
                "infoValue": "Key",
                "quantity": 1,
                "actionType": "obtain",
            },
        },
        {
            "id": "gain-gold",
            "type": "variable",
            "position": {"x": 0, "y": 200},
            "data": {"label": "Gain gold", "targetVariable": "gold", "variableValue": "${gold} + 10"},
        },
        {
            "id": "choice",
            "type": "branch",
            "position": {"x": 0, "y": 300},
            "data": {"label": "Open the door?", "branchType": "if_else", "conditionValue": "${gold} > 5"},
        },
        {
            "id": "yes",
            "type": "event",
            "position": {"x": -100, "y": 400},
            "data": {"label": "Door opens"},
        },
        {
            "id": "no",
            "type": "event",
            "position": {"x": 100, "y": 400},
            "data": {"label": "Door stays shut"},
        },
        {
            "id": "chapter",
            "type": "group",
            "position": {"x": 600, "y": 0},
            "style": {"width": 400, "height": 300},
            "data": {"label": "Chapter 2", "expanded": True},
        },
        {
            "id": "inner",
            "type": "event",
            "position": {"x": 40, "y": 60},
            "parentNode": "chapter",
            "width": 150,
            "height": 50,
            "data": {"label": "Inside"},
        },
        {
            "id": "note",
            "type": "sticky",
            "position": {"x": 0, "y": -80},
            "data": {"label": "Remember", "targetNodeId": "start", "hidden": False},
        },
    ],
    "edges": [
        {"id": "e-start-key", "source": "start", "target": "key", "type": "default"},
        {"id": "e-key-gold", "source": "key", "target": "gain-gold", "type": "default"},
        {"id": "e-gold-choice", "source": "gain-gold", "target": "choice", "type": "default"},
        {"id": "e-choice-yes", "source": "choice", "target": "yes", "sourceHandle": "true", "type": "default"},
        {"id": "e-choice-no", "source": "choice", "target": "no", "sourceHandle": "false", "type": "default"},
    ],
    "gameState": {
        "variables": {
            "gold": {"name": "gold", "type": "number", "value": 0},
        },
    },
    "characters": [],
    "resources": [],
    "edgeType": "default",
}


@pytest.fixture
def sample_scenario():
    """A fresh deep copy of the sample scenario document."""
    return copy.deepcopy(SAMPLE_SCENARIO)


@pytest.fixture
def store():
    """An empty GraphStore with default configuration."""
    return GraphStore()


@pytest.fixture
def loaded_store(sample_scenario):
    """GraphStore with the sample scenario loaded and deferred work drained."""
    graph = GraphStore()
    graph.load_raw(sample_scenario, source="sample")
    graph.tasks.run_pending()
    return graph


@pytest.fixture
def make_node():
    """
    Factory for Node instances.

    Usage:
        node = make_node("g", NodeType.GROUP, x=100, y=100, expanded=True)
    """
    def _make(
        node_id,
        node_type=NodeType.EVENT,
        x=0.0,
        y=0.0,
        parent=None,
        width=None,
        height=None,
        style=None,
        **data
    ):
        return Node(
            id=node_id,
            type=NodeType(node_type),
            position=Position(x, y),
            data=NodeData(**data),
            parent_node=parent,
            width=width,
            height=height,
            style=dict(style or {}),
        )

    return _make

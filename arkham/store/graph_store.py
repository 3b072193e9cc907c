"""
ARKHAM GraphStore

The scenario graph store: owns nodes, edges, the variable table and the
derived game state, and exposes every editing and play command.

Each command follows the same path:
    1. validate arguments (invalid commands change nothing)
    2. push a history snapshot if the command is undoable
    3. mutate
    4. cleanup (orphans, dead stickies, dangling edges)
    5. refresh visibility, game state totals and sticky flags
    6. emit store events

INVARIANT: After every command, parent references, sticky targets and edge
endpoints resolve to existing nodes, and the hierarchy index matches the
nodes' parent references.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import json
import logging
import uuid

from arkham.config import EditorConfig
from arkham.core.constants import (
    DETACH_OFFSET_X,
    DUPLICATE_OFFSET,
    GROUP_WRAP_PADDING,
    GROUPING_FALLBACK_HEIGHT,
    GROUPING_FALLBACK_WIDTH,
    RESERVED_VARIABLE_NAMES,
    STICKY_OFFSET_X,
)
from arkham.core.dataclasses import (
    CharacterRef,
    Edge,
    GameState,
    Node,
    NodeData,
    Position,
    ResourceRef,
    Variable,
)
from arkham.core.document import ScenarioDocument
from arkham.core.enums import (
    CharacterType,
    EdgeType,
    EditorMode,
    NodeType,
    ResourceType,
    StickyScope,
    VariableType,
)
from arkham.core.hierarchy import HierarchyIndex
from arkham.errors import ScenarioValidationError
from arkham.events import EventDispatcher, StoreEvent, StoreEventType
from arkham.formula import find_variable, replace_variable_reference
from arkham.gamestate import recalculate_game_state, refresh_sticky_flags
from arkham.history import HistoryManager, HistorySnapshot
from arkham.layout import (
    OverlapResolver,
    OverlapResult,
    Rect,
    absolute_position,
    absolute_rect,
    apply_group_size,
    parse_dimension,
    refit_ancestors,
    to_local,
)
from arkham.persistence import ScenarioAutosaver, read_document, write_document
from arkham.reveal import RevealResult, RevealStateMachine, cascade_order
from arkham.scheduling import DeferredTaskQueue
from arkham.store.cleanup import CleanupReport, prune_virtual_edges, run_cleanup
from arkham.store.virtual_edges import build_virtual_edges
from arkham.store.visibility import refresh_visibility
from arkham.validators import ValidationResult, validate_scenario_data
from arkham.validators.sanitizer import coerce_variable, variable_value_matches


logger = logging.getLogger("store.graph")


NodeInput = Union[Node, Dict[str, Any]]
PointInput = Union[Position, Tuple[float, float], Dict[str, float]]

EventHandler = Callable[[StoreEvent], None]

RESOLVE_ROOT_GROUPS_TASK = "load:resolve-root-groups"

_EVERYTHING = (
    StoreEventType.NODES_CHANGED,
    StoreEventType.EDGES_CHANGED,
    StoreEventType.VARIABLES_CHANGED,
    StoreEventType.GAME_STATE_CHANGED,
    StoreEventType.LAYOUT_CHANGED,
    StoreEventType.REFERENCES_CHANGED,
)


def _point(value: PointInput) -> Tuple[float, float]:
    if isinstance(value, Position):
        return (value.x, value.y)
    if isinstance(value, dict):
        return (float(value.get("x", 0.0)), float(value.get("y", 0.0)))
    x, y = value
    return (float(x), float(y))


def _size(value: Any) -> Optional[Tuple[float, float]]:
    if value is None:
        return None
    if isinstance(value, dict):
        return (float(value.get("width", 0.0)), float(value.get("height", 0.0)))
    width, height = value
    return (float(width), float(height))


def _value_matches(variable_type: VariableType, value: Any) -> bool:
    """Type check for values written through the variable commands."""
    if variable_type == VariableType.BOOLEAN:
        return isinstance(value, bool)
    if variable_type == VariableType.NUMBER:
        # Formula strings are accepted and evaluated on reveal
        return isinstance(value, (int, float, str)) and not isinstance(value, bool)
    return isinstance(value, str)


_DEFAULT_VALUES = {
    VariableType.STRING: "",
    VariableType.NUMBER: 0,
    VariableType.BOOLEAN: False,
}


class GraphStore:
    """
    Explicit, instance-scoped scenario store.

    Usage:
        store = GraphStore()
        store.load_file("scenario.json")
        store.toggle_group("group-1")
        store.undo()

        store.subscribe(StoreEventType.NODES_CHANGED, on_nodes)
    """

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        dispatcher: Optional[EventDispatcher] = None,
        task_queue: Optional[DeferredTaskQueue] = None,
    ):
        self._config = config or EditorConfig()

        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self._game_state = GameState()
        self._characters: Dict[str, CharacterRef] = {}
        self._resources: Dict[str, ResourceRef] = {}
        self._edge_type = self._config.default_edge_type
        self._viewport: Optional[Dict[str, float]] = None
        self._mode = EditorMode.EDIT

        self._hierarchy = HierarchyIndex()
        self._history = HistoryManager(limit=self._config.history_limit)
        self._events = dispatcher or EventDispatcher()
        self._tasks = task_queue or DeferredTaskQueue()

        self._autosaver: Optional[ScenarioAutosaver] = None
        if self._config.autosave_enabled:
            self._autosaver = ScenarioAutosaver(
                self._config.autosave_path,
                delay_ms=self._config.autosave_delay_ms,
            )

        self._version = 0
        self._history_dirty = False

        logger.debug("GraphStore created")

    # ==================== Accessors ====================

    @property
    def config(self) -> EditorConfig:
        return self._config

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges.values())

    @property
    def node_table(self) -> Mapping[str, Node]:
        """Live node table. Read-only by convention."""
        return self._nodes

    @property
    def edge_table(self) -> Mapping[str, Edge]:
        return self._edges

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    @property
    def game_state(self) -> GameState:
        return self._game_state

    @property
    def variables(self) -> Dict[str, Variable]:
        return self._game_state.variables

    def get_variable(self, name: str) -> Optional[Variable]:
        return find_variable(self._game_state.variables, name)

    @property
    def characters(self) -> List[CharacterRef]:
        return list(self._characters.values())

    @property
    def resources(self) -> List[ResourceRef]:
        return list(self._resources.values())

    @property
    def edge_type(self) -> str:
        return self._edge_type

    @property
    def viewport(self) -> Optional[Dict[str, float]]:
        return self._viewport

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def version(self) -> int:
        return self._version

    @property
    def hierarchy(self) -> HierarchyIndex:
        return self._hierarchy

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def events(self) -> EventDispatcher:
        return self._events

    @property
    def tasks(self) -> DeferredTaskQueue:
        return self._tasks

    @property
    def autosaver(self) -> Optional[ScenarioAutosaver]:
        return self._autosaver

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def children(self, node_id: str) -> List[str]:
        return self._hierarchy.children(node_id)

    def absolute_position(self, node_id: str) -> Optional[Tuple[float, float]]:
        if node_id not in self._nodes:
            return None
        return absolute_position(self._nodes, node_id)

    def absolute_rect(self, node_id: str) -> Optional[Rect]:
        if node_id not in self._nodes:
            return None
        return absolute_rect(self._nodes, node_id)

    def stickies_for(self, target_id: str) -> List[str]:
        return [
            node_id for node_id, node in self._nodes.items()
            if node.is_sticky and node.data.target_node_id == target_id
        ]

    # ==================== Subscriptions ====================

    def subscribe(self, event_type: StoreEventType, handler: EventHandler) -> str:
        return self._events.subscribe(event_type, handler)

    def subscribe_all(self, handler: EventHandler) -> str:
        return self._events.subscribe_all(handler)

    def unsubscribe(self, event_type: StoreEventType, handler: EventHandler) -> bool:
        return self._events.unsubscribe(event_type, handler)

    def unsubscribe_all(self, handler: EventHandler) -> bool:
        return self._events.unsubscribe_all(handler)

    # ==================== History ====================

    def push_history(self, label: str = "") -> None:
        """Record the current state as an undo point."""
        self._history.push(
            HistorySnapshot.capture(self._nodes, self._edges, self._game_state, label)
        )
        self._history_dirty = True

    def undo(self) -> bool:
        current = HistorySnapshot.capture(self._nodes, self._edges, self._game_state, "undo")
        snapshot = self._history.undo(current)
        if snapshot is None:
            return False
        self._install(snapshot)
        self._history_dirty = True
        self._finish("undo", *_EVERYTHING)
        return True

    def redo(self) -> bool:
        current = HistorySnapshot.capture(self._nodes, self._edges, self._game_state, "redo")
        snapshot = self._history.redo(current)
        if snapshot is None:
            return False
        self._install(snapshot)
        self._history_dirty = True
        self._finish("redo", *_EVERYTHING)
        return True

    def _install(self, snapshot: HistorySnapshot) -> None:
        restored = snapshot.restore()
        self._nodes.clear()
        self._nodes.update(restored.nodes)
        self._edges.clear()
        self._edges.update(restored.edges)
        self._game_state = restored.game_state
        self._hierarchy.rebuild(self._nodes)

    # ==================== Nodes ====================

    def create_node(
        self,
        node_type: Union[NodeType, str],
        position: PointInput = (0.0, 0.0),
        data: Optional[Dict[str, Any]] = None,
        parent_id: Optional[str] = None,
    ) -> Optional[str]:
        """Build a node with a fresh id and add it."""
        try:
            node_type = NodeType(node_type)
        except ValueError:
            logger.warning(f"Unknown node type: {node_type}")
            return None
        node = Node(
            id=self._new_id(node_type.value),
            type=node_type,
            position=Position(*_point(position)),
            data=NodeData.from_dict(data),
            parent_node=parent_id,
        )
        return self.add_node(node)

    def add_node(self, node: NodeInput) -> Optional[str]:
        """
        Add a node.

        Rejected (returns None) if the id already exists or the parent is
        unknown. Groups start expanded unless the node says otherwise.
        """
        if not isinstance(node, Node):
            try:
                node = Node.from_dict(node)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Rejected malformed node: {e}")
                return None

        if node.id in self._nodes:
            logger.warning(f"Node id already exists: {node.id}")
            return None
        if node.parent_node and node.parent_node not in self._nodes:
            logger.warning(f"Parent {node.parent_node} of {node.id} does not exist")
            return None

        self.push_history("add_node")
        if node.is_group and node.data.expanded is None:
            node.data.expanded = True
        self._nodes[node.id] = node
        self._hierarchy.add(node.id, node.parent_node)
        if node.parent_node:
            refit_ancestors(self._nodes, self._hierarchy, node.id)

        self._finish(
            "add_node",
            StoreEventType.NODES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
            node_ids=[node.id],
        )
        return node.id

    def update_node_data(self, node_id: str, updates: Dict[str, Any]) -> bool:
        """Merge updates into a node's data; keys may be camelCase or snake_case."""
        node = self._nodes.get(node_id)
        if node is None:
            logger.warning(f"update_node_data: unknown node {node_id}")
            return False

        self.push_history("update_node_data")
        node.data.update(updates)
        self._finish(
            "update_node_data",
            StoreEventType.NODES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
            node_ids=[node_id],
        )
        return True

    def update_node_style(self, node_id: str, style: Dict[str, Any]) -> bool:
        """Merge style properties. Not recorded in history."""
        node = self._nodes.get(node_id)
        if node is None:
            return False
        if all(node.style.get(key) == value for key, value in style.items()):
            return False

        node.style.update(style)
        if node.parent_node:
            refit_ancestors(self._nodes, self._hierarchy, node_id)
        self._finish(
            "update_node_style",
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[node_id],
            recalculate=False,
        )
        return True

    def set_node_dimensions(self, node_id: str, width: float, height: float) -> bool:
        """Record a measured size reported by the renderer. Not recorded in history."""
        node = self._nodes.get(node_id)
        if node is None:
            return False
        if node.width == width and node.height == height:
            return False

        node.width = width
        node.height = height
        if node.parent_node:
            refit_ancestors(self._nodes, self._hierarchy, node_id)
        self._finish(
            "set_node_dimensions",
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[node_id],
            recalculate=False,
        )
        return True

    def move_node(self, node_id: str, position: PointInput, record_history: bool = True) -> bool:
        """
        Move a node within its parent's coordinate space.

        Sticky notes attached to the node or its descendants follow it.
        Drag streams pass record_history=False and push once on drag start.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return False
        x, y = _point(position)
        dx, dy = x - node.position.x, y - node.position.y
        if dx == 0 and dy == 0:
            return False

        if record_history:
            self.push_history("move_node")

        node.position = Position(x, y)
        subtree = self._hierarchy.subtree(node_id)
        for sticky in self._nodes.values():
            if (
                sticky.is_sticky
                and sticky.id not in subtree
                and sticky.data.target_node_id in subtree
            ):
                sticky.position = Position(sticky.position.x + dx, sticky.position.y + dy)

        if node.parent_node:
            refit_ancestors(self._nodes, self._hierarchy, node_id)
        self._finish(
            "move_node",
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[node_id],
            recalculate=False,
        )
        return True

    def duplicate_nodes(self, node_ids: Sequence[str]) -> List[str]:
        """
        Copy nodes with fresh ids.

        Copies keep their parent when it is not part of the selection and
        are then offset; copies of children whose parent was also copied
        move under the parent's copy at their original local position.
        """
        sources = [self._nodes[i] for i in dict.fromkeys(node_ids) if i in self._nodes]
        if not sources:
            return []

        self.push_history("duplicate_nodes")
        mapping = {src.id: self._new_id(src.type.value) for src in sources}

        for src in sorted(sources, key=lambda n: self._hierarchy.depth(n.id)):
            clone = src.copy()
            clone.id = mapping[src.id]
            if src.parent_node in mapping:
                clone.parent_node = mapping[src.parent_node]
            else:
                clone.position = Position(
                    src.position.x + DUPLICATE_OFFSET,
                    src.position.y + DUPLICATE_OFFSET,
                )
            clone.data.label = f"{src.data.label} (Copy)"
            clone.data.has_sticky = None
            if clone.is_sticky and clone.data.target_node_id in mapping:
                clone.data.target_node_id = mapping[clone.data.target_node_id]
            self._nodes[clone.id] = clone
            self._hierarchy.add(clone.id, clone.parent_node)

        for src in sources:
            if src.parent_node and src.parent_node not in mapping:
                refit_ancestors(self._nodes, self._hierarchy, mapping[src.id])

        created = [mapping[src.id] for src in sources]
        self._finish(
            "duplicate_nodes",
            StoreEventType.NODES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
            node_ids=created,
        )
        return created

    def delete_nodes(self, node_ids: Sequence[str]) -> List[str]:
        """
        Delete nodes together with their descendants, attached stickies and
        incident edges. Returns every removed node id.
        """
        targets = [i for i in dict.fromkeys(node_ids) if i in self._nodes]
        if not targets:
            return []

        self.push_history("delete_nodes")
        before = list(self._nodes.keys())
        parents = {self._nodes[i].parent_node for i in targets}

        for node_id in targets:
            del self._nodes[node_id]
            self._hierarchy.remove(node_id)
        self._cleanup()

        for parent_id in parents:
            if parent_id and parent_id in self._nodes:
                apply_group_size(self._nodes, self._hierarchy, parent_id)
                refit_ancestors(self._nodes, self._hierarchy, parent_id)

        removed = [i for i in before if i not in self._nodes]
        self._finish(
            "delete_nodes",
            StoreEventType.NODES_CHANGED,
            StoreEventType.EDGES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
            node_ids=removed,
        )
        logger.info(f"Deleted {len(removed)} node(s)")
        return removed

    # ==================== Edges ====================

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[str]:
        """Create an edge. Duplicate connections are ignored."""
        if source not in self._nodes or target not in self._nodes:
            logger.warning(f"connect: unknown endpoint {source} -> {target}")
            return None
        for edge in self._edges.values():
            if (
                not edge.virtual
                and edge.source == source
                and edge.target == target
                and edge.source_handle == source_handle
                and edge.target_handle == target_handle
            ):
                return None

        self.push_history("connect")
        edge_id = f"reactflow__edge-{source}{source_handle or ''}-{target}{target_handle or ''}"
        if edge_id in self._edges:
            edge_id = self._new_id("edge")
        self._edges[edge_id] = Edge(
            id=edge_id,
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            type=self._edge_type,
            marker_end={"type": "arrowclosed"},
        )
        self._finish(
            "connect",
            StoreEventType.EDGES_CHANGED,
            node_ids=[source, target],
            recalculate=False,
        )
        return edge_id

    def reconnect_edge(
        self,
        edge_id: str,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> bool:
        edge = self._edges.get(edge_id)
        if edge is None or edge.virtual:
            return False
        if source not in self._nodes or target not in self._nodes:
            logger.warning(f"reconnect_edge: unknown endpoint {source} -> {target}")
            return False

        self.push_history("reconnect_edge")
        edge.source, edge.target = source, target
        edge.source_handle, edge.target_handle = source_handle, target_handle
        self._finish(
            "reconnect_edge",
            StoreEventType.EDGES_CHANGED,
            node_ids=[source, target],
            recalculate=False,
        )
        return True

    def delete_edges(self, edge_ids: Sequence[str]) -> List[str]:
        """
        Delete edges. Virtual edges drop deleted originals and disappear
        once none remain.
        """
        targets = [i for i in dict.fromkeys(edge_ids) if i in self._edges]
        if not targets:
            return []

        self.push_history("delete_edges")
        for edge_id in targets:
            del self._edges[edge_id]
        targets.extend(prune_virtual_edges(self._edges))

        self._finish("delete_edges", StoreEventType.EDGES_CHANGED, recalculate=False)
        return targets

    def set_edge_type(self, edge_type: Union[EdgeType, str]) -> bool:
        """Change the rendering type of every edge. Not recorded in history."""
        try:
            value = EdgeType(edge_type).value
        except ValueError:
            logger.warning(f"Unknown edge type: {edge_type}")
            return False

        self._edge_type = value
        for edge in self._edges.values():
            edge.type = value
        self._finish("set_edge_type", StoreEventType.EDGES_CHANGED, recalculate=False)
        return True

    # ==================== Groups ====================

    def group_nodes(self, node_ids: Sequence[str], label: str = "New Group") -> Optional[str]:
        """
        Wrap nodes in a new group.

        The group is placed in the members' common parent (root when they
        do not share one) around their bounding box plus padding. Members
        nested under another selected member keep their place.
        """
        selected = [i for i in dict.fromkeys(node_ids) if i in self._nodes]
        selected_set = set(selected)
        members = [
            i for i in selected
            if not any(a in selected_set for a in self._hierarchy.ancestors(i))
        ]
        if not members:
            return None

        parents = {self._nodes[i].parent_node for i in members}
        parent_id = parents.pop() if len(parents) == 1 else None

        self.push_history("group_nodes")

        local: Dict[str, Tuple[float, float]] = {}
        for node_id in members:
            local[node_id] = to_local(self._nodes, parent_id, absolute_position(self._nodes, node_id))

        min_x = min(x for x, _ in local.values())
        min_y = min(y for _, y in local.values())
        max_x = max(local[i][0] + self._grouping_size(self._nodes[i])[0] for i in members)
        max_y = max(local[i][1] + self._grouping_size(self._nodes[i])[1] for i in members)

        group_x = min_x - GROUP_WRAP_PADDING
        group_y = min_y - GROUP_WRAP_PADDING
        width = (max_x - min_x) + GROUP_WRAP_PADDING * 2
        height = (max_y - min_y) + GROUP_WRAP_PADDING * 2

        group = Node(
            id=self._new_id("group"),
            type=NodeType.GROUP,
            position=Position(group_x, group_y),
            data=NodeData(label=label, expanded=True),
            parent_node=parent_id,
            width=width,
            height=height,
            style={"width": width, "height": height, "zIndex": -1},
        )
        self._insert_node(group, before=members[0])
        self._hierarchy.add(group.id, parent_id)

        for node_id in members:
            node = self._nodes[node_id]
            x, y = local[node_id]
            node.parent_node = group.id
            node.position = Position(x - group_x, y - group_y)
            self._hierarchy.set_parent(node_id, group.id)

        # Old parents lose children when members came from different groups
        for old_parent in parents | {parent_id}:
            if old_parent and old_parent in self._nodes:
                apply_group_size(self._nodes, self._hierarchy, old_parent)
                refit_ancestors(self._nodes, self._hierarchy, old_parent)
        self._resolver().resolve_overlaps(group.id)

        self._finish(
            "group_nodes",
            StoreEventType.NODES_CHANGED,
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[group.id] + members,
        )
        logger.info(f"Grouped {len(members)} node(s) into {group.id}")
        return group.id

    def ungroup_nodes(self, group_id: str) -> bool:
        """Dissolve a group, lifting its children into the group's parent."""
        group = self._nodes.get(group_id)
        if group is None or not group.is_group:
            return False

        self.push_history("ungroup_nodes")
        parent_id = group.parent_node
        children = self._hierarchy.children(group_id)
        for child_id in children:
            child = self._nodes[child_id]
            child.position = Position(
                child.position.x + group.position.x,
                child.position.y + group.position.y,
            )
            child.parent_node = parent_id
            self._hierarchy.set_parent(child_id, parent_id)

        self._drop_virtual_edges(group_id)
        del self._nodes[group_id]
        self._hierarchy.remove(group_id)

        if parent_id and parent_id in self._nodes:
            apply_group_size(self._nodes, self._hierarchy, parent_id)
            refit_ancestors(self._nodes, self._hierarchy, parent_id)

        self._finish(
            "ungroup_nodes",
            StoreEventType.NODES_CHANGED,
            StoreEventType.EDGES_CHANGED,
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[group_id] + children,
        )
        return True

    def toggle_group(self, group_id: str) -> bool:
        """
        Collapse or expand a group.

        Collapsing hides every descendant and routes edges crossing the
        group boundary through virtual edges on the group. Expanding drops
        those virtual edges and pushes neighbours out of the regrown group.
        """
        group = self._nodes.get(group_id)
        if group is None or not group.is_group:
            return False

        self.push_history("toggle_group")
        if group.is_expanded:
            self._collapse(group)
        else:
            self._expand(group)

        self._finish(
            "toggle_group",
            StoreEventType.NODES_CHANGED,
            StoreEventType.EDGES_CHANGED,
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[group_id],
            recalculate=False,
        )
        return True

    def _collapse(self, group: Node) -> None:
        group.data.expanded = False
        virtual = self._build_virtual_edges(group.id)
        apply_group_size(self._nodes, self._hierarchy, group.id)
        refit_ancestors(self._nodes, self._hierarchy, group.id)
        logger.debug(f"Collapsed {group.id} with {len(virtual)} virtual edge(s)")

    def _expand(self, group: Node) -> None:
        group.data.expanded = True
        self._drop_virtual_edges(group.id)
        apply_group_size(self._nodes, self._hierarchy, group.id)
        refit_ancestors(self._nodes, self._hierarchy, group.id)
        refresh_visibility(self._nodes, self._edges, self._hierarchy)
        self._resolver().resolve_overlaps(group.id)
        logger.debug(f"Expanded {group.id}")

    def _build_virtual_edges(self, group_id: str) -> List[Edge]:
        inside = self._hierarchy.descendants(group_id)
        virtual = build_virtual_edges(group_id, inside, self._edges, self._edge_type)
        for edge in virtual:
            self._edges[edge.id] = edge
        return virtual

    def _drop_virtual_edges(self, group_id: str) -> None:
        for edge_id in [e.id for e in self._edges.values() if e.virtual and e.group_id == group_id]:
            del self._edges[edge_id]

    def _rebuild_collapsed(self, group_ids: Iterable[str]) -> None:
        """Re-derive the virtual edges of collapsed groups whose contents changed."""
        for group_id in dict.fromkeys(group_ids):
            group = self._nodes.get(group_id)
            if group is None or not group.is_group or group.is_expanded:
                continue
            self._drop_virtual_edges(group_id)
            self._build_virtual_edges(group_id)

    def _grouping_size(self, node: Node) -> Tuple[float, float]:
        if node.is_group:
            rect = absolute_rect(self._nodes, node.id)
            return (rect.width, rect.height)
        width = parse_dimension(node.width) or parse_dimension(node.style.get("width"))
        height = parse_dimension(node.height) or parse_dimension(node.style.get("height"))
        return (width or GROUPING_FALLBACK_WIDTH, height or GROUPING_FALLBACK_HEIGHT)

    # ==================== Reparenting ====================

    def set_node_parent(
        self,
        node_id: str,
        parent_id: Optional[str],
        position: Optional[PointInput] = None,
    ) -> bool:
        """
        Move a node under parent_id (None detaches to root).

        Without an explicit position the node keeps its absolute placement.
        Rejected if it would make a node its own ancestor.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return False
        if parent_id is not None:
            if parent_id not in self._nodes:
                logger.warning(f"set_node_parent: unknown parent {parent_id}")
                return False
            if parent_id == node_id or self._hierarchy.is_descendant(parent_id, of=node_id):
                logger.warning(f"Rejected cycle: {parent_id} is inside {node_id}")
                return False
        if parent_id == node.parent_node and position is None:
            return False

        self.push_history("set_node_parent")
        self._reparent(node, parent_id, _point(position) if position is not None else None)
        self._finish(
            "set_node_parent",
            StoreEventType.NODES_CHANGED,
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[node_id],
        )
        return True

    def reparent_on_drop(
        self,
        node_id: str,
        drop_point: Optional[PointInput] = None,
    ) -> Optional[str]:
        """
        Resolve the parent of a node after a drag ends.

        The innermost visible group containing the drop point (the node's
        centre by default) becomes the parent; groups inside the dragged
        node are never candidates. Dropping outside every group detaches
        the node. Returns the resulting parent id.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return None

        point = _point(drop_point) if drop_point is not None else absolute_rect(self._nodes, node_id).center
        excluded = self._hierarchy.subtree(node_id)

        best: Optional[str] = None
        best_area = float("inf")
        for candidate_id, candidate in self._nodes.items():
            if not candidate.is_group or candidate.hidden or candidate_id in excluded:
                continue
            rect = absolute_rect(self._nodes, candidate_id)
            if rect.contains(point) and rect.area < best_area:
                best, best_area = candidate_id, rect.area

        if best == node.parent_node:
            return best

        self.push_history("reparent_on_drop")
        self._reparent(node, best)
        if best is not None:
            self._resolver().resolve_group_overlaps(best)
        self._finish(
            "reparent_on_drop",
            StoreEventType.NODES_CHANGED,
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[node_id],
        )
        logger.debug(f"Dropped {node_id} into {best or 'root'}")
        return best

    def detach_from_group(self, node_id: str) -> bool:
        """Move a node to root level just right of its top-level group."""
        node = self._nodes.get(node_id)
        if node is None or not node.parent_node:
            return False

        top = absolute_rect(self._nodes, self._hierarchy.topmost_ancestor(node_id))
        _, abs_y = absolute_position(self._nodes, node_id)

        self.push_history("detach_from_group")
        self._reparent(node, None, (top.right + DETACH_OFFSET_X, abs_y))
        self._finish(
            "detach_from_group",
            StoreEventType.NODES_CHANGED,
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[node_id],
        )
        return True

    def _reparent(
        self,
        node: Node,
        parent_id: Optional[str],
        position: Optional[Tuple[float, float]] = None,
    ) -> None:
        old_parent = node.parent_node
        affected = self._hierarchy.ancestors(node.id)
        if position is None:
            position = to_local(self._nodes, parent_id, absolute_position(self._nodes, node.id))

        node.parent_node = parent_id
        node.position = Position(*position)
        self._hierarchy.set_parent(node.id, parent_id)

        for group_id in (old_parent, parent_id):
            if group_id and group_id in self._nodes:
                apply_group_size(self._nodes, self._hierarchy, group_id)
                refit_ancestors(self._nodes, self._hierarchy, group_id)

        self._rebuild_collapsed(affected + self._hierarchy.ancestors(node.id))

    # ==================== Layout ====================

    def update_group_size(self, group_id: str, content_size: Any = None) -> bool:
        """
        Re-fit a group to its children and optional measured content box.

        Not recorded in history. A size change pushes neighbours away.
        """
        group = self._nodes.get(group_id)
        if group is None or not group.is_group:
            return False
        if not apply_group_size(self._nodes, self._hierarchy, group_id, _size(content_size)):
            return False

        refit_ancestors(self._nodes, self._hierarchy, group_id)
        self._resolver().resolve_overlaps(group_id)
        self._finish(
            "update_group_size",
            StoreEventType.LAYOUT_CHANGED,
            node_ids=[group_id],
            recalculate=False,
        )
        return True

    def resolve_overlaps(self, node_id: str) -> OverlapResult:
        result = self._resolver().resolve_overlaps(node_id)
        if result.changed:
            self._finish(
                "resolve_overlaps",
                StoreEventType.LAYOUT_CHANGED,
                node_ids=list(result.moved),
                recalculate=False,
            )
        return result

    def resolve_group_overlaps(self, group_id: str) -> OverlapResult:
        result = self._resolver().resolve_group_overlaps(group_id)
        if result.changed:
            self._finish(
                "resolve_group_overlaps",
                StoreEventType.LAYOUT_CHANGED,
                node_ids=list(result.moved),
                recalculate=False,
            )
        return result

    def _resolver(self) -> OverlapResolver:
        return OverlapResolver(
            self._nodes,
            self._hierarchy,
            margin=self._config.overlap_margin,
            max_iterations=self._config.overlap_max_iterations,
        )

    # ==================== Sticky Notes ====================

    def add_sticky(
        self,
        target_id: Optional[str] = None,
        position: Optional[PointInput] = None,
        label: str = "",
        description: str = "",
    ) -> Optional[str]:
        """
        Add a sticky note at root level.

        Attached notes default to just right of the target's top edge.
        """
        if target_id is not None and target_id not in self._nodes:
            logger.warning(f"add_sticky: unknown target {target_id}")
            return None

        if position is not None:
            x, y = _point(position)
        elif target_id is not None:
            rect = absolute_rect(self._nodes, target_id)
            x, y = rect.right + STICKY_OFFSET_X, rect.y
        else:
            x, y = 0.0, 0.0

        self.push_history("add_sticky")
        sticky = Node(
            id=self._new_id("sticky"),
            type=NodeType.STICKY,
            position=Position(x, y),
            data=NodeData(
                label=label,
                description=description or None,
                target_node_id=target_id,
                hidden=False,
            ),
        )
        self._nodes[sticky.id] = sticky
        self._hierarchy.add(sticky.id)
        self._finish(
            "add_sticky",
            StoreEventType.NODES_CHANGED,
            node_ids=[sticky.id] + ([target_id] if target_id else []),
            recalculate=False,
        )
        return sticky.id

    def show_sticky(self, sticky_id: str) -> bool:
        return self._set_stickies_hidden([sticky_id], False, "show_sticky") > 0

    def hide_sticky(self, sticky_id: str) -> bool:
        return self._set_stickies_hidden([sticky_id], True, "hide_sticky") > 0

    def delete_sticky(self, sticky_id: str) -> bool:
        node = self._nodes.get(sticky_id)
        if node is None or not node.is_sticky:
            return False
        return bool(self.delete_nodes([sticky_id]))

    def show_stickies_for(self, target_id: str) -> int:
        return self._set_stickies_hidden(self.stickies_for(target_id), False, "show_stickies_for")

    def hide_stickies_for(self, target_id: str) -> int:
        return self._set_stickies_hidden(self.stickies_for(target_id), True, "hide_stickies_for")

    def delete_stickies_for(self, target_id: str) -> int:
        return len(self.delete_nodes(self.stickies_for(target_id)))

    def show_all_stickies(self, scope: StickyScope = StickyScope.ALL) -> int:
        return self._set_stickies_hidden(self._stickies_in_scope(scope), False, "show_all_stickies")

    def hide_all_stickies(self, scope: StickyScope = StickyScope.ALL) -> int:
        return self._set_stickies_hidden(self._stickies_in_scope(scope), True, "hide_all_stickies")

    def delete_all_stickies(self, scope: StickyScope = StickyScope.ALL) -> int:
        return len(self.delete_nodes(self._stickies_in_scope(scope)))

    def _stickies_in_scope(self, scope: StickyScope) -> List[str]:
        try:
            scope = StickyScope(scope)
        except ValueError:
            logger.warning(f"Unknown sticky scope: {scope}")
            return []
        result = []
        for node_id, node in self._nodes.items():
            if not node.is_sticky:
                continue
            attached = bool(node.data.target_node_id)
            if (
                scope == StickyScope.ALL
                or (scope == StickyScope.ATTACHED and attached)
                or (scope == StickyScope.FREE and not attached)
            ):
                result.append(node_id)
        return result

    def _set_stickies_hidden(self, sticky_ids: Iterable[str], hidden: bool, command: str) -> int:
        to_change = [
            self._nodes[i] for i in sticky_ids
            if i in self._nodes
            and self._nodes[i].is_sticky
            and bool(self._nodes[i].data.hidden) != hidden
        ]
        if not to_change:
            return 0

        self.push_history(command)
        for sticky in to_change:
            sticky.data.hidden = hidden
        self._finish(
            command,
            StoreEventType.NODES_CHANGED,
            node_ids=[s.id for s in to_change],
            recalculate=False,
        )
        return len(to_change)

    # ==================== Variables ====================

    def add_variable(
        self,
        name: str,
        variable_type: Union[VariableType, str] = VariableType.STRING,
        initial_value: Any = None,
    ) -> bool:
        """
        Declare a variable.

        Names are unique case-insensitively. Variable nodes without a target
        are assigned to the new variable.
        """
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            logger.warning("add_variable: empty name")
            return False
        if name in RESERVED_VARIABLE_NAMES:
            logger.error(f"Reserved variable name: {name}")
            return False
        if self.get_variable(name) is not None:
            logger.warning(f"Variable already exists: {name}")
            return False
        try:
            variable_type = VariableType(variable_type)
        except ValueError:
            logger.warning(f"Unknown variable type: {variable_type}")
            return False
        if initial_value is None:
            initial_value = _DEFAULT_VALUES[variable_type]
        if not _value_matches(variable_type, initial_value):
            logger.error(
                f"Value {initial_value!r} does not match type {variable_type.value} for {name}"
            )
            return False

        self.push_history("add_variable")
        self._game_state.variables[name] = Variable(name, variable_type, initial_value)

        assigned = []
        for node in self._nodes.values():
            if node.type == NodeType.VARIABLE and not node.data.target_variable:
                node.data.target_variable = name
                assigned.append(node.id)

        self._finish(
            "add_variable",
            StoreEventType.VARIABLES_CHANGED,
            StoreEventType.NODES_CHANGED,
            node_ids=assigned,
            recalculate=False,
        )
        return True

    def update_variable(self, name: str, value: Any) -> bool:
        variable = self.get_variable(name)
        if variable is None:
            logger.warning(f"update_variable: unknown variable {name}")
            return False
        if not _value_matches(variable.type, value):
            logger.error(f"Value {value!r} does not match type {variable.type.value} for {name}")
            return False

        self.push_history("update_variable")
        self._game_state.variables[variable.name] = Variable(variable.name, variable.type, value)
        self._finish("update_variable", StoreEventType.VARIABLES_CHANGED, recalculate=False)
        return True

    def rename_variable(self, old_name: str, new_name: str) -> bool:
        """
        Rename a variable and rewrite every reference to it.

        ${old} references in node text and in string variable values are
        rewritten, as are node fields naming the variable directly.
        A rename that only changes case is allowed.
        """
        variable = self.get_variable(old_name)
        if variable is None or not self._can_rename(variable, new_name):
            return False

        self.push_history("rename_variable")
        touched = self._apply_rename(variable.name, new_name.strip())
        self._finish(
            "rename_variable",
            StoreEventType.VARIABLES_CHANGED,
            StoreEventType.NODES_CHANGED,
            node_ids=touched,
            recalculate=False,
        )
        return True

    def update_variable_metadata(
        self,
        name: str,
        new_name: Optional[str] = None,
        variable_type: Union[VariableType, str, None] = None,
    ) -> bool:
        """
        Rename and/or retype a variable as one undo step.

        A rename rewrites references as rename_variable does. On a type
        change the value is coerced to the new type (numbers take the leading numeric prefix of text,
        booleans are true only for "true").
        """
        variable = self.get_variable(name)
        if variable is None:
            logger.warning(f"update_variable_metadata: unknown variable {name}")
            return False

        renaming = new_name is not None and new_name.strip() != variable.name
        if renaming and not self._can_rename(variable, new_name):
            return False

        target_type = variable.type
        if variable_type is not None:
            try:
                target_type = VariableType(variable_type)
            except ValueError:
                logger.warning(f"Unknown variable type: {variable_type}")
                return False
        retyping = target_type != variable.type
        if not renaming and not retyping:
            return False

        self.push_history("update_variable_metadata")
        current_name = variable.name
        touched: List[str] = []
        if renaming:
            current_name = new_name.strip()
            touched = self._apply_rename(variable.name, current_name)
        if retyping:
            value = self._game_state.variables[current_name].value
            if not variable_value_matches(target_type.value, value):
                value = coerce_variable(target_type.value, value)
            self._game_state.variables[current_name] = Variable(current_name, target_type, value)
            logger.info(f"Variable {current_name} is now {target_type.value} ({value!r})")

        self._finish(
            "update_variable_metadata",
            StoreEventType.VARIABLES_CHANGED,
            StoreEventType.NODES_CHANGED,
            node_ids=touched,
            recalculate=False,
        )
        return True

    def batch_rename_variables(self, renames: Mapping[str, str]) -> List[str]:
        """
        Apply several renames as a single undo step.

        Renames are applied in order; invalid ones are skipped. Returns the
        new names that were applied.
        """
        applied: List[str] = []
        touched: List[str] = []
        for old_name, new_name in renames.items():
            variable = self.get_variable(old_name)
            if variable is None or not self._can_rename(variable, new_name):
                continue
            if not applied:
                self.push_history("batch_rename_variables")
            touched.extend(self._apply_rename(variable.name, new_name.strip()))
            applied.append(new_name.strip())

        if applied:
            self._finish(
                "batch_rename_variables",
                StoreEventType.VARIABLES_CHANGED,
                StoreEventType.NODES_CHANGED,
                node_ids=list(dict.fromkeys(touched)),
                recalculate=False,
            )
        return applied

    def delete_variable(self, name: str) -> bool:
        variable = self.get_variable(name)
        if variable is None:
            return False

        self.push_history("delete_variable")
        del self._game_state.variables[variable.name]
        self._finish("delete_variable", StoreEventType.VARIABLES_CHANGED, recalculate=False)
        return True

    def _can_rename(self, variable: Variable, new_name: Any) -> bool:
        new_name = new_name.strip() if isinstance(new_name, str) else ""
        if not new_name or new_name == variable.name:
            return False
        if new_name in RESERVED_VARIABLE_NAMES:
            logger.error(f"Reserved variable name: {new_name}")
            return False
        clash = self.get_variable(new_name)
        if clash is not None and clash.name.lower() != variable.name.lower():
            logger.warning(f"Variable already exists: {new_name}")
            return False
        return True

    def _apply_rename(self, old_name: str, new_name: str) -> List[str]:
        """Rewrite the variable table and node references. Returns touched node ids."""
        renamed: Dict[str, Variable] = {}
        for name, variable in self._game_state.variables.items():
            if name == old_name:
                renamed[new_name] = Variable(new_name, variable.type, variable.value)
                continue
            value = variable.value
            if variable.type == VariableType.STRING:
                value = replace_variable_reference(value, old_name, new_name)
            renamed[name] = Variable(name, variable.type, value)
        self._game_state.variables = renamed

        old_lower = old_name.lower()
        touched = []
        for node in self._nodes.values():
            data = node.data
            before = data.to_dict()

            data.label = replace_variable_reference(data.label, old_name, new_name)
            data.description = replace_variable_reference(data.description, old_name, new_name)
            data.info_value = replace_variable_reference(data.info_value, old_name, new_name)
            data.condition_value = replace_variable_reference(data.condition_value, old_name, new_name)
            data.variable_value = replace_variable_reference(data.variable_value, old_name, new_name)
            for branch in data.branches or []:
                branch.label = replace_variable_reference(branch.label, old_name, new_name)

            if isinstance(data.condition_value, str) and data.condition_value.lower() == old_lower:
                data.condition_value = new_name
            if data.target_variable and data.target_variable.lower() == old_lower:
                data.target_variable = new_name
            if data.condition_variable and data.condition_variable.lower() == old_lower:
                data.condition_variable = new_name

            if data.to_dict() != before:
                touched.append(node.id)

        logger.info(f"Renamed variable {old_name} -> {new_name} ({len(touched)} node(s) updated)")
        return touched

    # ==================== Play Mode ====================

    def toggle_reveal(self, node_id: str) -> bool:
        """Flip a node's revealed flag, cascading to its descendants."""
        if node_id not in self._nodes:
            logger.warning(f"toggle_reveal: unknown node {node_id}")
            return False

        self.push_history("toggle_reveal")
        result = self._reveal_machine().toggle(node_id, self._game_state.variables)
        self._apply_reveal("toggle_reveal", result)
        return True

    def set_revealed(self, node_id: str, revealed: bool, cascade: bool = True) -> bool:
        if node_id not in self._nodes:
            return False
        order = cascade_order(self._hierarchy, node_id) if cascade else [node_id]
        if all(self._nodes[i].data.is_revealed == revealed for i in order if i in self._nodes):
            return False

        self.push_history("set_revealed")
        result = self._reveal_machine().set_revealed(
            node_id, revealed, self._game_state.variables, cascade=cascade
        )
        self._apply_reveal("set_revealed", result)
        return True

    def reveal_all(self) -> int:
        if all(n.data.is_revealed for n in self._nodes.values()):
            return 0
        self.push_history("reveal_all")
        result = self._reveal_machine().reveal_all(self._game_state.variables)
        self._apply_reveal("reveal_all", result)
        return len(result.changed)

    def unreveal_all(self) -> int:
        if not any(n.data.is_revealed for n in self._nodes.values()):
            return 0
        self.push_history("unreveal_all")
        result = self._reveal_machine().unreveal_all(self._game_state.variables)
        self._apply_reveal("unreveal_all", result)
        return len(result.changed)

    def reset_game(self) -> None:
        """Hide every node and forget captured previous values."""
        self.push_history("reset_game")
        for node in self._nodes.values():
            node.data.revealed = False
            node.data.previous_value = None
        self._finish(
            "reset_game",
            StoreEventType.NODES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
        )

    def set_mode(self, mode: Union[EditorMode, str]) -> bool:
        try:
            mode = EditorMode(mode)
        except ValueError:
            logger.warning(f"Unknown editor mode: {mode}")
            return False
        if mode == self._mode:
            return False
        self._mode = mode
        self._finish("set_mode", StoreEventType.MODE_CHANGED, structural=False, recalculate=False)
        return True

    def _reveal_machine(self) -> RevealStateMachine:
        return RevealStateMachine(self._nodes, self._hierarchy)

    def _apply_reveal(self, command: str, result: RevealResult) -> None:
        self._game_state.variables = result.variables
        event_types = [StoreEventType.NODES_CHANGED, StoreEventType.GAME_STATE_CHANGED]
        if result.touched_variables:
            event_types.append(StoreEventType.VARIABLES_CHANGED)
        self._finish(command, *event_types, node_ids=result.changed)

    # ==================== Characters & Resources ====================

    def add_character(
        self,
        name: str,
        character_type: Union[CharacterType, str] = CharacterType.PERSON,
        description: str = "",
    ) -> Optional[str]:
        try:
            character_type = CharacterType(character_type)
        except ValueError:
            logger.warning(f"Unknown character type: {character_type}")
            return None
        character = CharacterRef(
            id=self._new_id("char"),
            type=character_type.value,
            name=name,
            description=description,
        )
        self._characters[character.id] = character
        self._finish("add_character", StoreEventType.REFERENCES_CHANGED, structural=False, recalculate=False)
        return character.id

    def update_character(self, character_id: str, **fields: Any) -> bool:
        character = self._characters.get(character_id)
        if character is None or not self._update_reference(character, fields, CharacterType):
            return False
        self._finish("update_character", StoreEventType.REFERENCES_CHANGED, structural=False, recalculate=False)
        return True

    def delete_character(self, character_id: str) -> bool:
        if self._characters.pop(character_id, None) is None:
            return False
        self._finish("delete_character", StoreEventType.REFERENCES_CHANGED, structural=False, recalculate=False)
        return True

    def add_resource(
        self,
        name: str,
        resource_type: Union[ResourceType, str] = ResourceType.ITEM,
        description: str = "",
    ) -> Optional[str]:
        try:
            resource_type = ResourceType(resource_type)
        except ValueError:
            logger.warning(f"Unknown resource type: {resource_type}")
            return None
        resource = ResourceRef(
            id=self._new_id("res"),
            type=resource_type.value,
            name=name,
            description=description,
        )
        self._resources[resource.id] = resource
        self._finish(
            "add_resource",
            StoreEventType.REFERENCES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
            structural=False,
        )
        return resource.id

    def update_resource(self, resource_id: str, **fields: Any) -> bool:
        resource = self._resources.get(resource_id)
        if resource is None or not self._update_reference(resource, fields, ResourceType):
            return False
        self._finish(
            "update_resource",
            StoreEventType.REFERENCES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
            structural=False,
        )
        return True

    def delete_resource(self, resource_id: str) -> bool:
        if self._resources.pop(resource_id, None) is None:
            return False
        self._finish(
            "delete_resource",
            StoreEventType.REFERENCES_CHANGED,
            StoreEventType.GAME_STATE_CHANGED,
            structural=False,
        )
        return True

    @staticmethod
    def _update_reference(
        reference: Union[CharacterRef, ResourceRef],
        fields: Dict[str, Any],
        type_enum: type,
    ) -> bool:
        if "type" in fields:
            try:
                fields = dict(fields, type=type_enum(fields["type"]).value)
            except ValueError:
                logger.warning(f"Unknown {type_enum.__name__}: {fields['type']}")
                return False
        for key in ("name", "type", "description"):
            if key in fields:
                setattr(reference, key, fields[key])
        return True

    # ==================== Documents ====================

    def load_scenario(self, document: Union[ScenarioDocument, Dict[str, Any]]) -> None:
        """
        Replace the store's contents with a document.

        Expects sanitized input; see load_raw for untrusted data. Clears
        history and defers overlap resolution of root-level groups to the
        task queue.
        """
        if not isinstance(document, ScenarioDocument):
            document = ScenarioDocument.from_dict(document)

        self._nodes.clear()
        for node in document.nodes:
            self._nodes[node.id] = node
        self._edges.clear()
        for edge in document.edges:
            self._edges[edge.id] = edge
        self._game_state = document.game_state
        self._characters = {c.id: c for c in document.characters}
        self._resources = {r.id: r for r in document.resources}
        self._edge_type = document.edge_type
        self._viewport = document.viewport

        self._history.clear()
        self._history_dirty = True
        self._tasks.clear()

        for node_id in self._hierarchy.rebuild(self._nodes):
            node = self._nodes[node_id]
            if node.parent_node in self._nodes:
                logger.warning(f"Detached {node_id}: parent {node.parent_node} would form a cycle")
                node.parent_node = None
        self._cleanup()

        self._tasks.schedule(RESOLVE_ROOT_GROUPS_TASK, self._resolve_root_groups)
        self._finish("load_scenario", StoreEventType.SCENARIO_LOADED, *_EVERYTHING)
        logger.info(f"Loaded scenario: {len(self._nodes)} nodes, {len(self._edges)} edges")

    def load_raw(self, data: Any, source: str = "") -> ValidationResult:
        """
        Sanitize untrusted data and load it.

        Raises:
            ScenarioValidationError: if the data cannot be repaired
        """
        result = validate_scenario_data(data)
        if not result.is_valid:
            raise ScenarioValidationError(result.errors, result.warnings, source=source)
        self.load_scenario(result.corrected_data)
        return result

    def load_file(self, filepath: str) -> ValidationResult:
        try:
            data = read_document(filepath)
        except json.JSONDecodeError as e:
            raise ScenarioValidationError([f"Invalid JSON: {e}"], source=filepath) from e
        return self.load_raw(data, source=filepath)

    def reset(self) -> None:
        """Empty the store."""
        self.load_scenario(ScenarioDocument(edge_type=self._config.default_edge_type))
        self._mode = EditorMode.EDIT

    def export_document(self) -> ScenarioDocument:
        """Snapshot of the store as a document, parents listed before children."""
        ordered = sorted(self._nodes.values(), key=lambda n: self._hierarchy.depth(n.id))
        return ScenarioDocument(
            nodes=[n.copy() for n in ordered],
            edges=[e.copy() for e in self._edges.values()],
            game_state=self._game_state.copy(),
            characters=[CharacterRef(**vars(c)) for c in self._characters.values()],
            resources=[ResourceRef(**vars(r)) for r in self._resources.values()],
            edge_type=self._edge_type,
            viewport=dict(self._viewport) if self._viewport else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.export_document().to_dict()

    def save_file(self, filepath: str) -> None:
        write_document(filepath, self.to_dict())

    def close(self) -> None:
        """Flush a pending autosave."""
        if self._autosaver is not None:
            self._autosaver.flush()

    def _resolve_root_groups(self) -> None:
        resolver = self._resolver()
        result = OverlapResult()
        for node_id, node in list(self._nodes.items()):
            if node.is_group and not node.parent_node and node_id in self._nodes:
                result.merge(resolver.resolve_group_overlaps(node_id))
        if result.changed:
            self._finish(
                "resolve_root_groups",
                StoreEventType.LAYOUT_CHANGED,
                node_ids=list(result.moved),
                recalculate=False,
            )

    # ==================== Internal ====================

    def _finish(
        self,
        command: str,
        *event_types: StoreEventType,
        node_ids: Iterable[str] = (),
        structural: bool = True,
        recalculate: bool = True,
    ) -> None:
        """Run the post-command passes and notify subscribers."""
        types = list(dict.fromkeys(event_types))

        if structural:
            report = self._cleanup()
            if report.removed_edges and StoreEventType.EDGES_CHANGED not in types:
                types.append(StoreEventType.EDGES_CHANGED)
            _, hidden_edges = refresh_visibility(self._nodes, self._edges, self._hierarchy)
            if hidden_edges and StoreEventType.EDGES_CHANGED not in types:
                types.append(StoreEventType.EDGES_CHANGED)
            refresh_sticky_flags(self._nodes)

        if recalculate:
            self._game_state = recalculate_game_state(
                self._nodes.values(), self._game_state, self._resources
            )

        if self._history_dirty:
            types.append(StoreEventType.HISTORY_CHANGED)
            self._history_dirty = False

        self._version += 1
        ids = list(node_ids)
        for event_type in types:
            self._events.emit(
                StoreEvent(event_type=event_type, command=command, node_ids=ids, version=self._version)
            )

        if self._autosaver is not None:
            self._autosaver.schedule(self.to_dict())

    def _cleanup(self) -> CleanupReport:
        report = run_cleanup(self._nodes, self._edges)
        for node_id in report.removed_nodes + report.removed_stickies:
            self._hierarchy.remove(node_id)
        return report

    def _insert_node(self, node: Node, before: Optional[str] = None) -> None:
        """Insert keeping table order meaningful: groups precede their children."""
        if before is None or before not in self._nodes:
            self._nodes[node.id] = node
            return
        items = list(self._nodes.items())
        index = next(i for i, (key, _) in enumerate(items) if key == before)
        items.insert(index, (node.id, node))
        self._nodes.clear()
        self._nodes.update(items)

    def _new_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:8]}"
            if candidate not in self._nodes and candidate not in self._edges:
                return candidate

"""
DOM Snapshot - Immutable arena-style view of a DOM-like tree.

Nodes live in a flat table keyed by provider-assigned id; structure is
expressed through child id lists and parent back-references, never
through live object links. That keeps a snapshot cheap to copy: the
mutation helpers return a new snapshot (version + 1) that shares every
untouched Node with the old one.

Usage:
    snapshot = Snapshot.from_tree({
        "tag": "body",
        "children": [
            {"tag": "button", "attributes": {"data-testid": "submit"}, "text": "Submit"},
        ],
    })
    button = snapshot.get("n1")
    changed = snapshot.evolve("n1", own_text="Sending...")
"""

import copy
import hashlib
import json
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from resilient_locator.exceptions import SnapshotError


def join_text(own_text: str, child_texts: Iterable[str]) -> str:
    """Concatenate a node's own text with its children's text content."""
    parts = [own_text.strip()] if own_text else []
    parts.extend(t for t in child_texts if t)
    return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class Node:
    """
    One element of a snapshot.

    Attributes:
        id: Process-local identifier assigned by the snapshot provider
            (not the element's own ``id`` attribute)
        tag: Lowercase tag name
        attributes: Attribute name -> string value
        text_content: Visible text of the node and its descendants
        children: Ordered child node ids
        parent: Parent node id, None for the root
        own_text: Text directly inside this node (excluding children)
    """
    id: str
    tag: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    text_content: str = ""
    children: Tuple[str, ...] = ()
    parent: Optional[str] = None
    own_text: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "tag", self.tag.lower())
        object.__setattr__(
            self, "attributes",
            MappingProxyType({str(k): str(v) for k, v in dict(self.attributes).items()}),
        )
        object.__setattr__(self, "children", tuple(self.children))

    def get(self, name: str) -> Optional[str]:
        """Get an attribute value."""
        return self.attributes.get(name)

    @property
    def class_list(self) -> List[str]:
        class_attr = self.attributes.get("class", "")
        return class_attr.split() if class_attr else []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tag": self.tag,
            "attributes": dict(self.attributes),
            "text": self.own_text,
            "textContent": self.text_content,
            "children": list(self.children),
        }

    def __repr__(self) -> str:
        return f"Node(id={self.id!r}, tag={self.tag!r}, attributes={dict(self.attributes)!r})"


class Snapshot:
    """
    Immutable point-in-time view of a DOM-like tree.

    The constructor checks that the node table forms a single-rooted tree
    (no dangling children, no shared children, no cycles, nothing
    unreachable) and records each node's pre-order position, which is
    the document order used for every deterministic tie-break.
    """

    def __init__(
        self,
        nodes: Union[Mapping[str, Node], Iterable[Node]],
        root_id: str,
        version: int = 0,
    ):
        if isinstance(nodes, Mapping):
            table = dict(nodes)
        else:
            table = {}
            for node in nodes:
                if node.id in table:
                    raise SnapshotError(f"Duplicate node id: {node.id}", {"node_id": node.id})
                table[node.id] = node

        self._nodes: Dict[str, Node] = table
        self.root_id = root_id
        self.version = version
        self._order: Dict[str, int] = self._index()
        self._digest: Optional[str] = None

    def _index(self) -> Dict[str, int]:
        root = self._nodes.get(self.root_id)
        if root is None:
            raise SnapshotError(f"Root node {self.root_id!r} is missing", {"root": self.root_id})
        if root.parent is not None:
            raise SnapshotError("Root node must not have a parent", {"root": self.root_id})

        order: Dict[str, int] = {}
        stack = [self.root_id]
        while stack:
            node_id = stack.pop()
            if node_id in order:
                raise SnapshotError(f"Node {node_id!r} is reachable twice", {"node_id": node_id})
            order[node_id] = len(order)
            node = self._nodes[node_id]
            for child_id in reversed(node.children):
                child = self._nodes.get(child_id)
                if child is None:
                    raise SnapshotError(
                        f"Node {node_id!r} references missing child {child_id!r}",
                        {"node_id": node_id, "child_id": child_id},
                    )
                if child.parent != node_id:
                    raise SnapshotError(
                        f"Node {child_id!r} parent is {child.parent!r}, expected {node_id!r}",
                        {"node_id": child_id},
                    )
                stack.append(child_id)

        if len(order) != len(self._nodes):
            orphans = sorted(set(self._nodes) - set(order))
            raise SnapshotError("Snapshot contains unreachable nodes", {"node_ids": orphans[:10]})
        return order

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def root(self) -> Node:
        return self._nodes[self.root_id]

    def get(self, node_id: str) -> Optional[Node]:
        """Look up a node by id, None if it does not exist."""
        return self._nodes.get(node_id)

    def order_of(self, node_id: str) -> int:
        """Document-order (pre-order) position of a node."""
        return self._order[node_id]

    def iter_nodes(self) -> Iterator[Node]:
        """All nodes in document order."""
        # _order is filled during the pre-order walk, so its keys are in document order
        for node_id in self._order:
            yield self._nodes[node_id]

    @property
    def digest(self) -> str:
        """
        Content hash of the tree: ids, tags, attributes, text and structure.

        The version stamp is not part of it: snapshots built independently
        can carry the same version while holding different trees.
        """
        if self._digest is None:
            hasher = hashlib.md5(self.root_id.encode())
            for node in self.iter_nodes():
                hasher.update(json.dumps(
                    [node.id, node.tag, sorted(node.attributes.items()), node.own_text, list(node.children)],
                    separators=(",", ":"),
                ).encode())
            self._digest = hasher.hexdigest()
        return self._digest

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def parent_of(self, node: Node) -> Optional[Node]:
        return self._nodes.get(node.parent) if node.parent is not None else None

    def children_of(self, node: Node) -> List[Node]:
        return [self._nodes[c] for c in node.children]

    def sibling(self, node: Node, offset: int) -> Optional[Node]:
        """Sibling ``offset`` positions away (negative for previous)."""
        parent = self.parent_of(node)
        if parent is None:
            return None
        index = parent.children.index(node.id) + offset
        if 0 <= index < len(parent.children):
            return self._nodes[parent.children[index]]
        return None

    def ancestors(self, node: Node, max_depth: Optional[int] = None) -> List[Tuple[Node, int]]:
        """
        Ancestors with their distance, in document order (root first).
        """
        found: List[Tuple[Node, int]] = []
        current = self.parent_of(node)
        distance = 1
        while current is not None and (max_depth is None or distance <= max_depth):
            found.append((current, distance))
            current = self.parent_of(current)
            distance += 1
        found.reverse()
        return found

    def descendants(self, node: Node, max_depth: Optional[int] = None) -> List[Tuple[Node, int]]:
        """Descendants with their depth below ``node``, in document order."""
        found: List[Tuple[Node, int]] = []
        stack = [(self._nodes[c], 1) for c in reversed(node.children)]
        while stack:
            current, depth = stack.pop()
            found.append((current, depth))
            if max_depth is None or depth < max_depth:
                stack.extend((self._nodes[c], depth + 1) for c in reversed(current.children))
        return found

    # ------------------------------------------------------------------
    # Copy-on-write mutation
    # ------------------------------------------------------------------

    def evolve(
        self,
        node_id: str,
        *,
        tag: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
        own_text: Optional[str] = None,
    ) -> "Snapshot":
        """
        Return a new snapshot (version + 1) with one node changed.

        When ``own_text`` changes, ``text_content`` is recomputed for the
        node and every ancestor.
        """
        node = self._require(node_id)
        changes: Dict[str, Any] = {}
        if tag is not None:
            changes["tag"] = tag
        if attributes is not None:
            changes["attributes"] = attributes
        if own_text is not None:
            changes["own_text"] = own_text

        nodes = dict(self._nodes)
        nodes[node_id] = replace(node, **changes)
        if own_text is not None:
            self._refresh_text(nodes, node_id)
        return Snapshot(nodes, self.root_id, self.version + 1)

    def remove(self, node_id: str) -> "Snapshot":
        """Return a new snapshot (version + 1) without ``node_id``'s subtree."""
        node = self._require(node_id)
        if node.parent is None:
            raise SnapshotError("Cannot remove the root node", {"node_id": node_id})

        nodes = dict(self._nodes)
        for gone, _ in self.descendants(node):
            del nodes[gone.id]
        del nodes[node_id]

        parent = nodes[node.parent]
        nodes[parent.id] = replace(parent, children=tuple(c for c in parent.children if c != node_id))
        self._refresh_text(nodes, parent.id)
        return Snapshot(nodes, self.root_id, self.version + 1)

    def append(self, parent_id: str, tree: Mapping[str, Any], index: Optional[int] = None) -> "Snapshot":
        """
        Return a new snapshot (version + 1) with ``tree`` inserted under
        ``parent_id``. Nodes in ``tree`` without an explicit id get fresh ones.
        """
        parent = self._require(parent_id)
        nodes = dict(self._nodes)
        counter = [len(nodes)]

        def fresh_id() -> str:
            while f"n{counter[0]}" in nodes:
                counter[0] += 1
            return f"n{counter[0]}"

        new_root = _build_subtree(tree, parent_id, nodes, fresh_id)
        children = list(parent.children)
        children.insert(len(children) if index is None else index, new_root)
        nodes[parent_id] = replace(parent, children=tuple(children))
        self._refresh_text(nodes, parent_id)
        return Snapshot(nodes, self.root_id, self.version + 1)

    def with_version(self, version: int) -> "Snapshot":
        """Same tree, different version stamp. Nodes are shared."""
        clone = copy.copy(self)
        clone.version = version
        return clone

    def _require(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise SnapshotError(f"Unknown node id: {node_id}", {"node_id": node_id})
        return node

    @staticmethod
    def _refresh_text(nodes: Dict[str, Node], node_id: Optional[str]) -> None:
        while node_id is not None:
            node = nodes[node_id]
            text = join_text(node.own_text, (nodes[c].text_content for c in node.children))
            if text != node.text_content:
                nodes[node_id] = replace(node, text_content=text)
            node_id = node.parent

    # ------------------------------------------------------------------
    # Construction & serialization
    # ------------------------------------------------------------------

    @classmethod
    def from_tree(cls, tree: Mapping[str, Any], version: int = 0) -> "Snapshot":
        """
        Build a snapshot from a nested dict.

        Each level accepts ``tag``, ``attributes`` (or ``attrs``), ``text``,
        ``children`` and an optional ``id``. Missing ids are assigned in
        document order as ``n0``, ``n1``, ...
        """
        nodes: Dict[str, Node] = {}
        counter = [0]

        def fresh_id() -> str:
            while f"n{counter[0]}" in nodes:
                counter[0] += 1
            node_id = f"n{counter[0]}"
            counter[0] += 1
            return node_id

        root_id = _build_subtree(tree, None, nodes, fresh_id)
        return cls(nodes, root_id, version)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        """
        Build a snapshot from either the flat wire form::

            {"root": "n0", "version": 3, "nodes": [{"id": "n0", "tag": "body",
              "attributes": {}, "text": "", "children": ["n1"]}, ...]}

        or a nested tree (see from_tree). Parents are derived from the
        child lists; ``textContent`` is computed when absent.
        """
        if not isinstance(data, Mapping):
            raise SnapshotError(f"Snapshot data must be a mapping, not {type(data).__name__}")
        if "nodes" not in data:
            return cls.from_tree(data, version=int(data.get("version", 0)))

        raw_nodes = data["nodes"]
        if not isinstance(raw_nodes, list) or not raw_nodes:
            raise SnapshotError("'nodes' must be a non-empty list")

        for raw in raw_nodes:
            if not isinstance(raw, Mapping):
                raise SnapshotError(
                    f"Node entries must be mappings, not {type(raw).__name__}",
                    {"node": repr(raw)[:200]},
                )
            missing = [name for name in ("id", "tag") if name not in raw]
            if missing:
                raise SnapshotError(
                    f"Node is missing required field '{missing[0]}'",
                    {"node": repr(raw)[:200]},
                )
            if not isinstance(raw.get("children") or [], list):
                raise SnapshotError(
                    f"Node {raw['id']!r} children must be a list",
                    {"node_id": str(raw["id"])},
                )

        parents: Dict[str, str] = {}
        for raw in raw_nodes:
            for child_id in raw.get("children") or []:
                child_id = str(child_id)
                if child_id in parents:
                    raise SnapshotError(f"Node {child_id!r} has two parents", {"node_id": child_id})
                parents[child_id] = str(raw["id"])

        nodes: Dict[str, Node] = {}
        for raw in raw_nodes:
            node_id = str(raw["id"])
            tag = raw["tag"]
            if node_id in nodes:
                raise SnapshotError(f"Duplicate node id: {node_id}", {"node_id": node_id})
            nodes[node_id] = Node(
                id=node_id,
                tag=tag,
                attributes=raw.get("attributes") or {},
                text_content=raw.get("textContent") or "",
                children=tuple(str(c) for c in raw.get("children") or ()),
                parent=parents.get(node_id),
                own_text=raw.get("text") or "",
            )

        root_id = str(data.get("root", raw_nodes[0]["id"]))
        if any("textContent" not in raw for raw in raw_nodes):
            _fill_text_content(nodes, root_id)
        return cls(nodes, root_id, int(data.get("version", 0)))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the flat wire form accepted by from_dict()."""
        return {
            "root": self.root_id,
            "version": self.version,
            "nodes": [node.to_dict() for node in self.iter_nodes()],
        }

    def __repr__(self) -> str:
        return f"Snapshot(root={self.root_id!r}, nodes={len(self)}, version={self.version})"


def _build_subtree(
    tree: Mapping[str, Any],
    parent_id: Optional[str],
    nodes: Dict[str, Node],
    fresh_id,
) -> str:
    """Add ``tree`` to ``nodes`` (pre-order ids), returning its root id."""
    if not isinstance(tree, Mapping) or "tag" not in tree:
        raise SnapshotError("Tree node must be a mapping with a 'tag'", {"node": repr(tree)[:200]})

    node_id = str(tree["id"]) if "id" in tree else fresh_id()
    if node_id in nodes:
        raise SnapshotError(f"Duplicate node id: {node_id}", {"node_id": node_id})

    # Reserve the id before recursing so children get later ids
    own_text = tree.get("text") or ""
    nodes[node_id] = Node(id=node_id, tag=tree["tag"], parent=parent_id)
    child_ids = [_build_subtree(child, node_id, nodes, fresh_id) for child in tree.get("children", [])]

    nodes[node_id] = Node(
        id=node_id,
        tag=tree["tag"],
        attributes=tree.get("attributes") or tree.get("attrs") or {},
        text_content=join_text(own_text, (nodes[c].text_content for c in child_ids)),
        children=tuple(child_ids),
        parent=parent_id,
        own_text=own_text,
    )
    return node_id


def _fill_text_content(nodes: Dict[str, Node], root_id: str) -> None:
    """Compute text_content bottom-up for nodes that lack it."""
    if root_id not in nodes:
        return

    post_order: List[str] = []
    stack = [root_id]
    seen = set()
    while stack:
        node_id = stack.pop()
        if node_id in seen or node_id not in nodes:
            continue
        seen.add(node_id)
        post_order.append(node_id)
        stack.extend(nodes[node_id].children)

    for node_id in reversed(post_order):
        node = nodes[node_id]
        if node.text_content:
            continue
        text = join_text(node.own_text, (nodes[c].text_content for c in node.children if c in nodes))
        nodes[node_id] = replace(node, text_content=text)

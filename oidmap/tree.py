"""
OIDMap - OID Tree Builder.

Builds a navigable tree from the ordered varbind stream of a walk. One node
per OID component; shared prefixes are reused, never duplicated.

Each node stores only its own component. Full paths live in the tree's
identifier index, which gives O(1) "already seen" checks and lets an insert
resume from the deepest known ancestor instead of descending from the root.

Usage:
    tree = OidTree(Identifier.parse("1.3.6.1"))
    tree.insert(Identifier.parse("1.3.6.1.2.1.1.5.0"), name="sysName.0")

    for depth, node in tree.traverse():
        print("    " * depth + node.label)
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple

from .oid import Identifier, components_after


class TreeNode:
    """One OID component level."""

    __slots__ = ("component", "name", "is_record", "children", "_index")

    def __init__(self, component: Optional[int], name: Optional[str] = None):
        self.component = component
        self.name = name
        self.is_record = False
        self.children: List["TreeNode"] = []
        self._index: Dict[int, "TreeNode"] = {}

    def get_child(self, component: int) -> Optional["TreeNode"]:
        return self._index.get(component)

    def add_child(self, component: int) -> "TreeNode":
        """Return the child for component, creating it if missing."""
        child = self._index.get(component)
        if child is None:
            child = TreeNode(component)
            self._index[component] = child
            self.children.append(child)
        return child

    @property
    def label(self) -> str:
        text = "" if self.component is None else str(self.component)
        if self.name:
            return f"{text} ({self.name})" if text else self.name
        return text

    def __repr__(self) -> str:
        return f"TreeNode({self.component!r}, children={len(self.children)})"


class OidTree:
    """
    OID hierarchy rooted at a walk's root identifier.

    Attributes:
        root_identifier: OID the tree hangs from (empty = whole namespace)
        root: Node representing root_identifier
    """

    def __init__(self, root_identifier: Optional[Identifier] = None):
        self.root_identifier = root_identifier or Identifier(())
        self.root = TreeNode(None, name=str(self.root_identifier) or None)
        self._nodes: Dict[Identifier, TreeNode] = {self.root_identifier: self.root}

    def insert(self, identifier: Identifier, name: Optional[str] = None) -> TreeNode:
        """
        Insert identifier, creating every missing ancestor.

        Idempotent: a second insert of the same identifier returns the
        existing node (updating its name if one is given).

        Raises:
            ValueError: identifier is outside the tree's root
        """
        if not self.root_identifier.is_prefix_of(identifier):
            raise ValueError(f"{identifier} is outside tree root {self.root_identifier}")

        node = self._nodes.get(identifier)
        if node is None:
            anchor, anchor_node = self._deepest_known(identifier)
            node = anchor_node
            path = anchor
            for component in components_after(anchor, identifier):
                node = node.add_child(component)
                path = path.child(component)
                self._nodes[path] = node

        node.is_record = True
        if name:
            node.name = name
        return node

    def _deepest_known(self, identifier: Identifier) -> Tuple[Identifier, TreeNode]:
        """Longest already-indexed prefix of identifier (at least the root)."""
        current = identifier
        while current is not None and len(current) >= len(self.root_identifier):
            node = self._nodes.get(current)
            if node is not None:
                return current, node
            current = current.parent
        return self.root_identifier, self.root

    def get(self, identifier: Identifier) -> Optional[TreeNode]:
        return self._nodes.get(identifier)

    def __contains__(self, identifier: Identifier) -> bool:
        return identifier in self._nodes

    def __len__(self) -> int:
        """Number of nodes below the root."""
        return len(self._nodes) - 1

    @property
    def record_count(self) -> int:
        return sum(1 for node in self._nodes.values() if node.is_record)

    def traverse(self) -> Iterator[Tuple[int, TreeNode]]:
        """Depth-first pre-order (depth, node) pairs. Each call starts over."""
        stack: List[Tuple[int, TreeNode]] = [(0, self.root)]
        while stack:
            depth, node = stack.pop()
            yield depth, node
            for child in reversed(node.children):
                stack.append((depth + 1, child))

    def render(self, indent: int = 4) -> Iterator[str]:
        """Indented text lines, one per node."""
        for depth, node in self.traverse():
            yield " " * (indent * depth) + node.label

    def to_dict(self) -> Dict[str, Any]:
        """Nested dict for JSON export."""
        def convert(node: TreeNode) -> Dict[str, Any]:
            entry: Dict[str, Any] = {"component": node.component}
            if node.name:
                entry["name"] = node.name
            if node.is_record:
                entry["record"] = True
            if node.children:
                entry["children"] = [convert(child) for child in node.children]
            return entry

        result = convert(self.root)
        result["oid"] = str(self.root_identifier)
        return result

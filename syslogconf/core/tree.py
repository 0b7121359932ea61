"""Hierarchical selection tree over flat event-channel paths.

Channel paths such as ``Microsoft-Windows-PowerShell/Operational`` are
decomposed into ordered key parts (``Microsoft``, ``Windows``,
``PowerShell``, ``Operational``) and inserted into a trie keyed by those
parts.  Only checked leaves carry selection semantics: the flat list that
gets persisted is rebuilt from the ``leaf_path`` of every checked leaf.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Sequence

from syslogconf.core.logging import get_logger


ROOT_NAME = "(root)"
PROVIDER_DELIMITER = "-"
INSTANCE_DELIMITER = "/"


def channel_key_parts(path: str) -> list[str]:
    """Split a channel path into provider parts plus an optional instance part."""
    slash_parts = path.strip().split(INSTANCE_DELIMITER)
    key_parts = slash_parts[0].split(PROVIDER_DELIMITER)
    if len(slash_parts) > 1:
        key_parts.append(slash_parts[1])
    return [part for part in key_parts if part]


@dataclass(slots=True, eq=False)
class TreeNode:
    name: str
    children: dict[str, TreeNode] = field(default_factory=dict)
    leaf_path: str | None = None
    checked: bool = False

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def child(self, name: str) -> TreeNode | None:
        return self.children.get(name)

    def add_child(self, name: str) -> TreeNode:
        node = self.children.get(name)
        if node is None:
            node = TreeNode(name=name)
            self.children[name] = node
        return node

    def walk(self) -> Iterator[TreeNode]:
        yield self
        for child in self.children.values():
            yield from child.walk()

    def set_checked_recursive(self, value: bool) -> None:
        for node in self.walk():
            node.checked = value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "checked": self.checked}
        if self.leaf_path is not None:
            payload["leaf_path"] = self.leaf_path
        if self.children:
            payload["children"] = [child.to_dict() for child in self.children.values()]
        return payload


@dataclass(slots=True)
class PathCollision:
    key_parts: tuple[str, ...]
    previous_path: str
    path: str


class PathTree:
    def __init__(self) -> None:
        self.root = TreeNode(name=ROOT_NAME)
        self.collisions: list[PathCollision] = []
        self._logger = get_logger("syslogconf.tree")

    @classmethod
    def build(cls, all_paths: Iterable[str]) -> PathTree:
        tree = cls()
        for path in all_paths:
            tree.insert(channel_key_parts(path), path)
        return tree

    def insert(self, key_parts: Sequence[str], leaf_path: str) -> TreeNode | None:
        if not key_parts:
            return None
        node = self.root
        for part in key_parts:
            node = node.add_child(part)
        if node.leaf_path is not None and node.leaf_path != leaf_path:
            collision = PathCollision(
                key_parts=tuple(key_parts),
                previous_path=node.leaf_path,
                path=leaf_path,
            )
            self.collisions.append(collision)
            self._logger.warning(
                f"channel path '{leaf_path}' collides with '{node.leaf_path}'; keeping the later path",
                extra={
                    "event_action": "tree_collision",
                    "payload": {"key_parts": list(key_parts), "previous_path": node.leaf_path},
                },
            )
        node.leaf_path = leaf_path
        return node

    def find(self, key_parts: Sequence[str]) -> TreeNode | None:
        if not key_parts:
            return None
        node = self.root
        for part in key_parts:
            next_node = node.child(part)
            if next_node is None:
                return None
            node = next_node
        return node

    def reset(self, checked: bool = False) -> None:
        self.root.set_checked_recursive(checked)

    def set_all_checked(self, value: bool) -> None:
        self.root.set_checked_recursive(value)

    def apply_selection(self, paths: Iterable[str]) -> None:
        # Additive; call reset(False) first for exact-set semantics.
        for path in paths:
            node = self.find(channel_key_parts(path))
            if node is not None:
                node.checked = True

    def toggle(self, key_parts: Sequence[str], checked: bool) -> bool:
        node = self.find(key_parts)
        if node is None:
            return False
        node.set_checked_recursive(checked)
        return True

    def toggle_path(self, path: str, checked: bool) -> bool:
        return self.toggle(channel_key_parts(path), checked)

    def selected_leaf_paths(self) -> Iterator[str]:
        return _selected_leaf_paths(self.root)

    def leaf_paths(self) -> Iterator[str]:
        for node in self.root.walk():
            if node.is_leaf and node.leaf_path is not None:
                yield node.leaf_path

    def to_dict(self) -> dict[str, Any]:
        return self.root.to_dict()


def _selected_leaf_paths(node: TreeNode) -> Iterator[str]:
    if node.is_leaf:
        if node.checked and node.leaf_path is not None:
            yield node.leaf_path
        return
    for child in node.children.values():
        yield from _selected_leaf_paths(child)

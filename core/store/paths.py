"""
RMS Store — Path Helpers
==========================
Pure helpers over '/'-separated store paths and nested dict trees.

A path addresses a node in a JSON-like tree:
    "orders/order001/status" → tree["orders"]["order001"]["status"]

The empty path "" addresses the whole tree.
Writing None deletes a node; empty parents are pruned.
"""

from __future__ import annotations

from typing import Any, Tuple


def split(path: str) -> Tuple[str, ...]:
    if not isinstance(path, str):
        raise ValueError(f"Store path must be a string, got {type(path).__name__}.")
    segments = tuple(s for s in path.strip().split("/") if s)
    for s in segments:
        if s in (".", ".."):
            raise ValueError(f"Store path '{path}' contains a relative segment.")
    return segments


def normalize(path: str) -> str:
    return "/".join(split(path))


def join(*parts: str) -> str:
    segments: list[str] = []
    for part in parts:
        segments.extend(split(part))
    return "/".join(segments)


def is_under(path: str, parent: str) -> bool:
    """True when path equals parent or lies beneath it."""
    child_segments = split(path)
    parent_segments = split(parent)
    return child_segments[: len(parent_segments)] == parent_segments


def overlaps(a: str, b: str) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    return is_under(a, b) or is_under(b, a)


def get_in(tree: Any, segments: Tuple[str, ...]) -> Any:
    node = tree
    for segment in segments:
        if not isinstance(node, dict):
            return None
        node = node.get(segment)
        if node is None:
            return None
    return node


def set_in(tree: dict, segments: Tuple[str, ...], value: Any) -> dict:
    """
    Set (or delete, when value is None) the node at segments.

    Mutates and returns tree. The root itself cannot be replaced
    by a non-dict value.
    """
    if not segments:
        if value is None:
            tree.clear()
            return tree
        if not isinstance(value, dict):
            raise ValueError("The store root can only hold a mapping.")
        tree.clear()
        tree.update(value)
        return tree

    if value is None:
        _delete_in(tree, segments)
        return tree

    node = tree
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = value
    return tree


def _delete_in(tree: dict, segments: Tuple[str, ...]) -> None:
    trail = [tree]
    node = tree
    for segment in segments[:-1]:
        node = node.get(segment) if isinstance(node, dict) else None
        if not isinstance(node, dict):
            return
        trail.append(node)
    trail[-1].pop(segments[-1], None)

    # prune empty parents bottom-up
    for depth in range(len(segments) - 1, 0, -1):
        parent = trail[depth - 1]
        key = segments[depth - 1]
        if parent.get(key) == {}:
            parent.pop(key)
        else:
            break

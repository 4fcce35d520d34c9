# Overview: Category forest walks: flattened tree options, descendant sets,
# breadcrumbs and root lookup. Inputs are any objects exposing id, parent_id
# and name (ORM rows or plain records).

from __future__ import annotations

from typing import Iterable, Optional, Protocol


class CategoryLike(Protocol):
    id: int
    parent_id: Optional[int]
    name: str


class CategoryCycleError(Exception):
    """Raised when a parent chain loops back on itself."""

    def __init__(self, category_id: int):
        super().__init__(f"Category hierarchy contains a cycle at category {category_id}")
        self.category_id = category_id


def _children_map(categories: Iterable[CategoryLike]) -> dict[Optional[int], list[CategoryLike]]:
    children: dict[Optional[int], list[CategoryLike]] = {}
    for category in categories:
        children.setdefault(category.parent_id, []).append(category)
    for siblings in children.values():
        siblings.sort(key=lambda c: ((c.name or "").lower(), c.id))
    return children


def build_tree(categories: Iterable[CategoryLike], parent_id: Optional[int] = None, depth: int = 0) -> list[dict]:
    """
    Pre-order flattening: each category is immediately followed by its
    children, siblings sorted by name. is_leaf means no category names
    this one as parent.
    """
    categories = list(categories)
    children = _children_map(categories)
    parent_ids = {c.parent_id for c in categories if c.parent_id is not None}

    result: list[dict] = []
    visited: set[int] = set()
    stack = [(c, depth) for c in reversed(children.get(parent_id, []))]
    while stack:
        category, level = stack.pop()
        if category.id in visited:
            raise CategoryCycleError(category.id)
        visited.add(category.id)
        result.append({
            "id": category.id,
            "value": category.id,
            "label": category.name,
            "depth": level,
            "is_leaf": category.id not in parent_ids,
        })
        stack.extend((child, level + 1) for child in reversed(children.get(category.id, [])))
    return result


def descendant_ids(categories: Iterable[CategoryLike], category_id: int) -> set[int]:
    """The category itself plus everything transitively below it."""
    children = _children_map(categories)

    result = {category_id}
    stack = [c.id for c in children.get(category_id, [])]
    while stack:
        current = stack.pop()
        if current in result:
            raise CategoryCycleError(current)
        result.add(current)
        stack.extend(c.id for c in children.get(current, []))
    return result


def ancestors(by_id: dict[int, CategoryLike], category_id: int) -> list[CategoryLike]:
    """Ancestors ordered root first, excluding the category itself."""
    chain: list[CategoryLike] = []
    seen = {category_id}
    current = by_id.get(category_id)
    parent_id = current.parent_id if current is not None else None
    while parent_id is not None:
        if parent_id in seen:
            raise CategoryCycleError(parent_id)
        seen.add(parent_id)
        parent = by_id.get(parent_id)
        if parent is None:
            break
        chain.append(parent)
        parent_id = parent.parent_id
    chain.reverse()
    return chain


def breadcrumb(by_id: dict[int, CategoryLike], category_id: int) -> list[dict]:
    return [{"id": c.id, "name": c.name} for c in ancestors(by_id, category_id)]


class RootResolver:
    """Memoized category -> root ancestor lookup for one report run."""

    def __init__(self, by_id: dict[int, CategoryLike]):
        self._by_id = by_id
        self._cache: dict[int, int] = {}

    def __call__(self, category_id: int) -> int:
        if category_id in self._cache:
            return self._cache[category_id]
        chain = ancestors(self._by_id, category_id)
        root_id = chain[0].id if chain else category_id
        self._cache[category_id] = root_id
        return root_id

# Overview: Service-layer operations for categories; encapsulates business logic and database work.

from __future__ import annotations

from ..domain import category_tree
from ..domain.category_tree import CategoryCycleError, RootResolver
from ..extensions import db
from ..models import Category
from .concurrency import lock_for_update, run_with_retry
from .tenant_service import require_category_in_store


class CategoryError(Exception):
    """Raised when category operations fail (invalid parent, cycles)."""
    pass


def load_categories(store_id: int) -> list[Category]:
    return db.session.query(Category).filter_by(store_id=store_id).order_by(Category.id).all()


def categories_by_id(store_id: int) -> dict[int, Category]:
    return {c.id: c for c in load_categories(store_id)}


def create_category(store_id: int, name: str, parent_id: int | None = None, *, sort_order: int = 0) -> Category:
    def _op():
        if not name or not name.strip():
            raise CategoryError("Category name is required")
        if parent_id is not None:
            require_category_in_store(parent_id, store_id)

        category = Category(
            store_id=store_id,
            parent_id=parent_id,
            name=name.strip(),
            sort_order=sort_order,
        )
        db.session.add(category)
        db.session.commit()
        return category

    return run_with_retry(_op)


def move_category(store_id: int, category_id: int, parent_id: int | None) -> Category:
    """Re-parent a category, refusing moves that would create a cycle."""
    def _op():
        category = lock_for_update(
            db.session.query(Category).filter_by(id=category_id, store_id=store_id)
        ).first()
        if category is None:
            require_category_in_store(category_id, store_id)

        if parent_id is not None:
            require_category_in_store(parent_id, store_id)
            try:
                below = category_tree.descendant_ids(load_categories(store_id), category_id)
            except CategoryCycleError as exc:
                raise CategoryError(str(exc)) from exc
            if parent_id in below:
                raise CategoryError("Category cannot be moved under itself or one of its descendants")

        category.parent_id = parent_id
        db.session.commit()
        return category

    return run_with_retry(_op)


def get_tree_options(store_id: int) -> list[dict]:
    try:
        return category_tree.build_tree(load_categories(store_id))
    except CategoryCycleError as exc:
        raise CategoryError(str(exc)) from exc


def get_descendant_ids(store_id: int, category_id: int) -> set[int]:
    require_category_in_store(category_id, store_id)
    try:
        return category_tree.descendant_ids(load_categories(store_id), category_id)
    except CategoryCycleError as exc:
        raise CategoryError(str(exc)) from exc


def expand_category_filter(store_id: int, category_ids: list[int] | None) -> set[int] | None:
    """Union of descendant sets for a report's category filter; None means no filter."""
    if not category_ids:
        return None
    categories = load_categories(store_id)
    known = {c.id for c in categories}
    allowed: set[int] = set()
    for category_id in category_ids:
        if category_id not in known:
            require_category_in_store(category_id, store_id)
        try:
            allowed |= category_tree.descendant_ids(categories, category_id)
        except CategoryCycleError as exc:
            raise CategoryError(str(exc)) from exc
    return allowed


def get_breadcrumb(store_id: int, category_id: int) -> list[dict]:
    require_category_in_store(category_id, store_id)
    try:
        return category_tree.breadcrumb(categories_by_id(store_id), category_id)
    except CategoryCycleError as exc:
        raise CategoryError(str(exc)) from exc


def root_resolver(store_id: int) -> RootResolver:
    return RootResolver(categories_by_id(store_id))

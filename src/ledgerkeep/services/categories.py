"""Category seeding and maintenance."""

from __future__ import annotations

from ..constants.categories import DEFAULT_EXPENSE_CATEGORIES, DEFAULT_INCOME_CATEGORIES
from ..domain.repositories import CategoryRepository
from ..errors import NotFoundError, ValidationError
from ..infra.database import translate_store_errors
from ..logging_config import get_logger
from ..models.category import Category

logger = get_logger("categories")

CATEGORY_TYPES = ("income", "expense")


def _check_type(category_type: str) -> str:
    value = (category_type or "").strip().lower()
    if value not in CATEGORY_TYPES:
        raise ValidationError(f"category type must be one of {', '.join(CATEGORY_TYPES)}")
    return value


def ensure_default_categories(repo: CategoryRepository, *, user_id: int) -> list[Category]:
    """Seed the default income and expense categories for a user with none."""

    with translate_store_errors("seed categories"):
        if repo.list_all(user_id=user_id):
            return []
        defaults = [
            Category(name=name, category_type="expense", is_default=True, user_id=user_id)
            for name in DEFAULT_EXPENSE_CATEGORIES
        ] + [
            Category(name=name, category_type="income", is_default=True, user_id=user_id)
            for name in DEFAULT_INCOME_CATEGORIES
        ]
        created = repo.bulk_create(defaults, user_id=user_id)
    logger.info("Default categories created", extra={"count": len(created)})
    return created


def add_category(
    repo: CategoryRepository, name: str, category_type: str, *, user_id: int
) -> tuple[Category, bool]:
    """Add a category. Returns ``(category, created)``.

    An existing name of the same type (compared case-insensitively) is returned
    unchanged with ``created`` set to False.
    """

    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("category name is required")
    kind = _check_type(category_type)
    with translate_store_errors("add category"):
        existing = repo.get_by_name(cleaned, kind, user_id=user_id)
        if existing is not None:
            return existing, False
        category = repo.create(Category(name=cleaned, category_type=kind), user_id=user_id)
    logger.info("Category added", extra={"category": cleaned, "category_type": kind})
    return category, True


def delete_category(repo: CategoryRepository, category_id: int, *, user_id: int) -> None:
    """Remove a category. Transactions tagged with it keep their label."""

    with translate_store_errors("delete category"):
        if repo.get_by_id(category_id, user_id=user_id) is None:
            raise NotFoundError(f"Category {category_id} not found")
        repo.delete(category_id, user_id=user_id)
    logger.info("Category deleted", extra={"category_id": category_id})


def names_by_type(repo: CategoryRepository, *, user_id: int) -> dict[str, list[str]]:
    """Category names grouped as ``{"income": [...], "expense": [...]}``."""

    grouped: dict[str, list[str]] = {kind: [] for kind in CATEGORY_TYPES}
    for category in repo.list_all(user_id=user_id):
        grouped.setdefault(category.category_type, []).append(category.name)
    return grouped

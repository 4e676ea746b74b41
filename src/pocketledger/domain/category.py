"""Category domain service."""

from typing import Optional

from pocketledger.database.base import Database
from pocketledger.domain.entities import Category as CategoryEntity, CategoryType
from pocketledger.domain.errors import NotFoundError, ValidationError, category_not_found

DEBT_PAYMENT_CATEGORY = "Debt Payment"


class CategoryService:
    """Service for managing categories and resolving their implied type."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, owner_id: str, name: str, category_type: str) -> int:
        """Create a category.

        Raises:
            ValidationError: If name is empty or type unknown
            ConflictError: If the owner already has this name/type pair
        """
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        return self.db.create_category(owner_id, name.strip(), _category_type(category_type))

    def get_category(self, owner_id: str, category_id: int) -> Optional[CategoryEntity]:
        return self.db.get_category(owner_id, category_id)

    def require_category(self, owner_id: str, category_id: int) -> CategoryEntity:
        """Get category by ID or raise NotFoundError."""
        category = self.db.get_category(owner_id, category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        return category

    def list_categories(self, owner_id: str, category_type: Optional[str] = None) -> list[CategoryEntity]:
        if category_type is not None:
            category_type = _category_type(category_type)
        return self.db.list_categories(owner_id, category_type)

    def resolve_type(self, owner_id: str, category_id: int) -> CategoryType:
        """Return the type implied by an owner's category."""
        return self.require_category(owner_id, category_id).type

    def find_or_create_debt_payment_category(self, owner_id: str) -> int:
        """Return the owner's "Debt Payment" expense category, creating it once."""
        category = self.db.get_or_create_category(
            owner_id, DEBT_PAYMENT_CATEGORY, CategoryType.EXPENSE
        )
        return category.id


def _category_type(value: str) -> CategoryType:
    try:
        return CategoryType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown category type '{value}'. "
            f"Supported: {', '.join(t.value for t in CategoryType)}"
        )

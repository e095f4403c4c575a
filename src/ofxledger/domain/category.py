"""Category domain service."""

from typing import Optional
from ofxledger.database.base import Database
from ofxledger.domain.entities import (
    Category as CategoryEntity,
    CategoryMapping as CategoryMappingEntity,
    CategoryType,
)
from ofxledger.domain.errors import (
    NotFoundError,
    ValidationError,
    category_not_found,
    category_path_not_found,
)


class CategoryService:
    """Service for managing categories and description mappings."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        name: str,
        parent_path: Optional[str] = None,
        category_type: Optional[CategoryType] = None,
    ) -> int:
        """Create a category.

        Args:
            name: Category name
            parent_path: Optional parent category path (e.g., "Food & Dining")
            category_type: Category type; defaults to the parent's type, or expense

        Returns:
            Category ID

        Raises:
            NotFoundError: If parent category doesn't exist
        """
        parent_id = None
        if parent_path is not None:
            parent = self.db.get_category_by_path(parent_path)
            if parent is None:
                raise NotFoundError(f"Parent category '{parent_path}' not found")
            parent_id = parent.id
            if category_type is None:
                category_type = parent.category_type

        if category_type is None:
            category_type = CategoryType.EXPENSE

        return self.db.create_category(name=name, parent_id=parent_id, category_type=category_type)

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def get_category_by_path(self, path: str) -> Optional[CategoryEntity]:
        """Get category by path (e.g., "Food & Dining > Groceries")."""
        return self.db.get_category_by_path(path)

    def resolve_category(self, category: str | int) -> int:
        """Resolve a category path or ID to a category ID.

        Raises:
            NotFoundError: If the category doesn't exist
        """
        try:
            category_id = int(category)
        except (ValueError, TypeError):
            found = self.db.get_category_by_path(str(category))
            if found is None:
                raise NotFoundError(category_path_not_found(str(category))) from None
            return found.id

        if self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        return category_id

    def list_categories(self) -> list[CategoryEntity]:
        """List all categories."""
        return self.db.list_categories()

    def format_category_path(self, category_id: int) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Food & Dining > Groceries")
        """
        cat = self.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id

        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))

    def add_mapping(self, pattern: str, category: str | int) -> int:
        """Map descriptions containing pattern to a category.

        Args:
            pattern: Case-insensitive substring to look for in descriptions
            category: Category path or ID

        Returns:
            Mapping ID

        Raises:
            ValidationError: If the pattern is empty
            NotFoundError: If the category doesn't exist
        """
        pattern = pattern.strip()
        if not pattern:
            raise ValidationError("Mapping pattern must not be empty")
        category_id = self.resolve_category(category)
        return self.db.create_category_mapping(pattern=pattern, category_id=category_id)

    def list_mappings(self) -> list[CategoryMappingEntity]:
        """List active category mappings in the order they are applied."""
        return self.db.list_category_mappings(active_only=True)

"""ORM models. Importing this package registers every table on Base.metadata."""

from waifupicks.models.item import Item

__all__ = ["Item"]

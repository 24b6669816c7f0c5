# app/models/board.py
"""
Database model for boards.
A board groups cards into named columns ("To Do", "Doing", "Done", ...).
"""
import uuid
from tortoise import fields, models

class Board(models.Model):
    """
    Board database model.

    Relationships:
    - Belongs to an owner User (many-to-one)
    - Has many Cards (one-to-many, via related_name="cards")
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    owner = fields.ForeignKeyField(
        "models.User",
        related_name="boards",
        on_delete=fields.CASCADE
    )  # Deleting the owner deletes their boards
    title = fields.CharField(max_length=128)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "boards"

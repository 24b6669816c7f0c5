# app/models/user.py
"""
Database model for users.
Represents a board member: the owner of boards and the assignee of cards.
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many Boards (one-to-many, via related_name="boards")
    - Has many assigned Cards (one-to-many, via related_name="assigned_cards")
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    username = fields.CharField(
        max_length=256,
        unique=True,
        index=True
    )  # Display / login name (must be unique, indexed for fast lookups)
    email = fields.CharField(max_length=256, null=True)  # User email address (optional)
    created_at = fields.DatetimeField(auto_now_add=True)  # Timestamp when account was created

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"  # Database table name

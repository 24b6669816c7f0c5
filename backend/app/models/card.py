# app/models/card.py
"""
Database model for cards (the items moved across a board's columns).
"""
import uuid
from tortoise import fields, models

class Card(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    board = fields.ForeignKeyField(
        "models.Board",
        related_name="cards",
        on_delete=fields.CASCADE
    )
    assignee = fields.ForeignKeyField(
        "models.User",
        related_name="assigned_cards",
        null=True,
        on_delete=fields.SET_NULL
    )  # Unassigned when the user is removed
    column = fields.CharField(max_length=64, default="todo")  # Column key on the board
    position = fields.IntField(default=0)  # Order within the column (ascending)
    title = fields.CharField(max_length=256)
    description = fields.TextField(null=True)
    due_at = fields.DatetimeField(null=True)  # Optional deadline
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "cards"

# app/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: Board member
- Board: Board owned by a user
- Card: Card on a board column
"""
from .user import User
from .board import Board
from .card import Card

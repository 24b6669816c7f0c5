# app/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- store: Tortoise/Aerich store handle used by the startup bootstrap
- migration_manager: Database readiness bootstrap (create / migrate / no-op)
"""

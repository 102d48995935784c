"""
Model package initializer.

This module exists to make sure SQLAlchemy's registry is populated in any runtime
that uses the ORM outside of `costlens/main.py` (scripts, one-off jobs).
"""

# Import side-effects: register ORM mappings.
from costlens.models import cloud  # noqa: F401

"""
Program Management Assistant
Model package — shared SQLAlchemy handle and domain entities.

The only table is the key-value storage table backing the persistent
store (see ``pmassist.models.storage``). Domain entities are plain
dataclasses serialised into that store (see ``pmassist.models.entities``).
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

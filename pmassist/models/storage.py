"""
Program Management Assistant
Key-value storage table.

One row per storage key. Values are JSON text written by
``pmassist.storage.StoreAdapter``; the table itself knows nothing about
their shape.
"""

from datetime import datetime, timezone

from pmassist.models import db


class StorageEntry(db.Model):
    """A single persisted key/value pair."""

    __tablename__ = "storage_entries"

    key = db.Column(db.String(200), primary_key=True)
    value = db.Column(db.Text, nullable=False, default="")
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<StorageEntry {self.key}>"

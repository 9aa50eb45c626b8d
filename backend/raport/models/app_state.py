"""
AppStateRecord model - the persisted application-state blob.

The gradebook persists undo history, cursor and audit log together as a
single JSON document, so one row per deployment is all that is stored.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String
from raport.database import Base

DEFAULT_STATE_KEY = "default"


class AppStateRecord(Base):
    """
    SQLAlchemy model for the app_state table.

    ``payload`` holds ``{historyStack, historyIndex, history}`` as JSON text.
    """
    __tablename__ = "app_state"

    key = Column(String(64), primary_key=True, default=DEFAULT_STATE_KEY,
                 doc="State slot name (one slot per school deployment)")
    payload = Column(Text, nullable=False,
                     doc="Serialized history stack, cursor and audit log")
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc),
                        doc="When the state was last saved")

    def __repr__(self):
        return f"<AppStateRecord(key={self.key}, bytes={len(self.payload or '')})>"

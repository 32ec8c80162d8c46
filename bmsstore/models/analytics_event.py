# bmsstore/models/analytics_event.py
from datetime import datetime

from bmsstore.extensions import db


class AnalyticsEvent(db.Model):
    __tablename__ = "analytics"

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    event_data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "event_data": dict(self.event_data or {}),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AnalyticsEvent {self.event_type}>"

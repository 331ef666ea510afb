from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z


class AppSetting(db.Model):
    """
    Key-value settings persisted in the database.

    Each key holds one settings section (e.g. "currency", "business") as a
    JSON object. Survives restarts and is shared by every app instance.
    """
    __tablename__ = "app_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False, unique=True)
    value = db.Column(db.Text, nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def load(self) -> dict:
        return json.loads(self.value) if self.value else {}

    def store(self, data: dict) -> None:
        self.value = json.dumps(data, sort_keys=True)

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "value": self.load(),
            "updated_by_user_id": self.updated_by_user_id,
            "updated_at": to_utc_z(self.updated_at),
        }

from datetime import datetime
from extensions import db


class Version(db.Model):
    """Immutable code snapshot of a project."""
    __tablename__ = "versions"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    code = db.Column(db.Text, nullable=False)
    description = db.Column(db.String(256), nullable=False, default="")
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

from datetime import datetime
from extensions import db


class Project(db.Model):
    """Website document under revision: latest code plus a pointer into its version history."""
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(256), nullable=False)
    initial_prompt = db.Column(db.Text, nullable=False)
    current_code = db.Column(db.Text, nullable=False, default="")
    # versions.id <-> projects.id is circular; emitted as ALTER on backends that support it
    current_version_id = db.Column(
        db.Integer,
        db.ForeignKey("versions.id", use_alter=True, name="fk_projects_current_version"),
        nullable=True,
    )
    is_published = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        owner = self.user
        return {
            "id": self.id,
            "name": self.name,
            "title": self.name,
            "initial_prompt": self.initial_prompt,
            "current_code": self.current_code,
            "current_version_index": self.current_version_id,
            "user_id": self.user_id,
            "user": {"id": owner.id, "name": owner.name, "email": owner.email} if owner else None,
            "is_published": self.is_published,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

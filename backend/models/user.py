from datetime import datetime
from extensions import db


class User(db.Model):
    """Registered account; holds the credit balance and creation counter."""
    __tablename__ = "users"
    __table_args__ = (db.CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(256), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    credits = db.Column(db.Integer, nullable=False, default=20)
    total_creation = db.Column(db.Integer, nullable=False, default=0)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    projects = db.relationship("Project", backref="user", lazy="dynamic", cascade="all, delete-orphan")

    @staticmethod
    def normalize_email(email):
        return (email or "").strip().lower()

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "credits": self.credits,
            "total_creation": self.total_creation,
            "email_verified": self.email_verified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

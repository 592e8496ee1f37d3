from datetime import datetime, timezone

from flask_login import UserMixin

from dailypicks import db


class Profile(UserMixin, db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(100))

    # Site-wide admin privileges (manual triggers)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    picks = db.relationship(
        "Pick", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    daily_scores = db.relationship(
        "DailyScore", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    streak = db.relationship(
        "Streak", backref="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Profile {self.email}>"

    @property
    def name(self):
        """Display name, falling back to the local part of the email"""
        if self.display_name:
            return self.display_name
        if self.email:
            return self.email.split("@")[0]
        return "Anonymous"

    @staticmethod
    def get_or_create(email, display_name=None):
        """Return the profile for an email, creating it on first sight"""
        profile = Profile.query.filter_by(email=email).first()
        if profile:
            return profile, False

        profile = Profile(email=email, display_name=display_name or email.split("@")[0])
        db.session.add(profile)
        return profile, True

    def to_dict(self):
        return {
            "id": self.id,
            "display_name": self.name,
            "is_admin": self.is_admin,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

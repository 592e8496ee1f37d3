from datetime import datetime, timedelta, timezone

from dailypicks import db


class Streak(db.Model):
    __tablename__ = "streaks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id"), nullable=False, unique=True
    )

    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    last_played_date = db.Column(db.Date)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<Streak user_id={self.user_id} current={self.current_streak}>"

    @staticmethod
    def get_for_user(user_id):
        return Streak.query.filter_by(user_id=user_id).first()

    def is_behind(self, slate_date):
        """True if this streak was last extended before the given slate day"""
        return self.last_played_date is None or self.last_played_date < slate_date

    def continued_length(self, slate_date):
        """
        Streak length if the user plays the slate on slate_date.

        Consecutive only when the last played day is exactly the previous
        calendar day; any gap restarts the count at 1.
        """
        if self.last_played_date == slate_date - timedelta(days=1):
            return self.current_streak + 1
        return 1

    @staticmethod
    def record_play(user_id, slate_date, current_streak, existing=None):
        """Upsert the streak row after a user plays the slate on slate_date"""
        streak = existing or Streak.get_for_user(user_id)
        if not streak:
            streak = Streak(user_id=user_id, longest_streak=0)
            db.session.add(streak)

        streak.current_streak = current_streak
        streak.longest_streak = max(current_streak, streak.longest_streak or 0)
        streak.last_played_date = slate_date
        return streak

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_played_date": (
                self.last_played_date.isoformat() if self.last_played_date else None
            ),
        }

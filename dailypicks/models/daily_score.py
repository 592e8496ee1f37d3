from datetime import datetime, timezone

from dailypicks import db


class DailyScore(db.Model):
    __tablename__ = "daily_scores"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    slate_id = db.Column(db.Integer, db.ForeignKey("slates.id"), nullable=False)

    correct_picks = db.Column(db.Integer, nullable=False, default=0)
    total_picks = db.Column(db.Integer, nullable=False, default=0)

    # Point breakdown
    base_points = db.Column(db.Integer, nullable=False, default=0)
    performance_points = db.Column(db.Integer, nullable=False, default=0)
    perfect_bonus = db.Column(db.Integer, nullable=False, default=0)
    streak_bonus = db.Column(db.Integer, nullable=False, default=0)
    total_points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "slate_id", name="unique_user_slate_score"),
        db.Index("idx_daily_score_slate", "slate_id"),
    )

    def __repr__(self):
        return f"<DailyScore user_id={self.user_id} slate_id={self.slate_id} points={self.total_points}>"

    @staticmethod
    def upsert(user_id, slate_id, correct, total, points):
        """Insert or overwrite the score row for (user, slate)"""
        score = DailyScore.query.filter_by(user_id=user_id, slate_id=slate_id).first()
        if not score:
            score = DailyScore(user_id=user_id, slate_id=slate_id)
            db.session.add(score)

        score.correct_picks = correct
        score.total_picks = total
        score.base_points = points["base_points"]
        score.performance_points = points["performance_points"]
        score.perfect_bonus = points["perfect_bonus"]
        score.streak_bonus = points["streak_bonus"]
        score.total_points = points["total_points"]
        return score

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "slate_id": self.slate_id,
            "correct_picks": self.correct_picks,
            "total_picks": self.total_picks,
            "base_points": self.base_points,
            "performance_points": self.performance_points,
            "perfect_bonus": self.perfect_bonus,
            "streak_bonus": self.streak_bonus,
            "total_points": self.total_points,
        }

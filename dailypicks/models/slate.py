from datetime import datetime, timezone

from dailypicks import db


class Slate(db.Model):
    __tablename__ = "slates"

    STATUS_OPEN = "open"
    STATUS_LOCKED = "locked"
    STATUS_FINALIZED = "finalized"
    STATUSES = (STATUS_OPEN, STATUS_LOCKED, STATUS_FINALIZED)

    id = db.Column(db.Integer, primary_key=True)

    # One slate per calendar day in the reference timezone
    date = db.Column(db.Date, nullable=False, unique=True, index=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_OPEN)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    locked_at = db.Column(db.DateTime)
    finalized_at = db.Column(db.DateTime)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    games = db.relationship(
        "Game",
        backref="slate",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Game.commence_time",
    )
    picks = db.relationship(
        "Pick", backref="slate", lazy="dynamic", cascade="all, delete-orphan"
    )
    daily_scores = db.relationship(
        "DailyScore", backref="slate", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('open', 'locked', 'finalized')", name="valid_slate_status"
        ),
        db.Index("idx_slate_status_date", "status", "date"),
    )

    def __repr__(self):
        return f"<Slate {self.date} {self.status}>"

    @property
    def is_open(self):
        return self.status == self.STATUS_OPEN

    @property
    def is_finalized(self):
        return self.status == self.STATUS_FINALIZED

    @staticmethod
    def get_for_date(day):
        """Get the slate for a calendar day (None if not built yet)"""
        return Slate.query.filter_by(date=day).first()

    @staticmethod
    def get_outstanding():
        """Slates still awaiting results, oldest first"""
        return (
            Slate.query.filter(
                Slate.status.in_([Slate.STATUS_OPEN, Slate.STATUS_LOCKED])
            )
            .order_by(Slate.date.asc())
            .all()
        )

    def game_progress(self):
        """Return (final_count, total_count) for this slate's games"""
        from .game import Game

        total = self.games.count()
        final = self.games.filter(Game.status == Game.STATUS_FINAL).count()
        return final, total

    def pending_games(self):
        """Games that have not reached final status"""
        from .game import Game

        return self.games.filter(Game.status != Game.STATUS_FINAL).all()

    def lock(self):
        """Move open -> locked; returns True if the status changed"""
        if self.status != self.STATUS_OPEN:
            return False

        self.status = self.STATUS_LOCKED
        self.locked_at = datetime.now(timezone.utc)
        return True

    def claim_finalization(self):
        """
        Atomically mark this slate finalized inside the current transaction.

        Issues a conditional UPDATE guarded on the status not already being
        finalized. Returns False when another trigger got there first, in
        which case the caller must roll back instead of writing scores.
        """
        result = db.session.execute(
            db.update(Slate)
            .where(Slate.id == self.id, Slate.status != Slate.STATUS_FINALIZED)
            .values(
                status=Slate.STATUS_FINALIZED,
                finalized_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        claimed = result.rowcount == 1
        if claimed:
            db.session.expire(self, ["status", "finalized_at"])
        return claimed

    def to_dict(self, include_games=False):
        final, total = self.game_progress()
        data = {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "status": self.status,
            "games_final": final,
            "games_total": total,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
            "finalized_at": (
                self.finalized_at.isoformat() if self.finalized_at else None
            ),
        }

        if include_games:
            data["games"] = [game.to_dict() for game in self.games.all()]

        return data

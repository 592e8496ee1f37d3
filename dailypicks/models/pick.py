from datetime import datetime, timezone

from dailypicks import db


class Pick(db.Model):
    __tablename__ = "picks"

    SIDE_HOME = "home"
    SIDE_AWAY = "away"
    SIDES = (SIDE_HOME, SIDE_AWAY)

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    user_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)
    # Denormalized for per-slate queries
    slate_id = db.Column(db.Integer, db.ForeignKey("slates.id"), nullable=False)

    pick = db.Column(db.String(4), nullable=False)

    # Unknown until the game is final
    is_correct = db.Column(db.Boolean)

    # Timestamps
    locked_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "game_id", name="unique_user_game_pick"),
        db.CheckConstraint("pick IN ('home', 'away')", name="valid_pick_side"),
        db.Index("idx_pick_slate", "slate_id"),
        db.Index("idx_pick_user_slate", "user_id", "slate_id"),
        db.Index("idx_pick_game", "game_id"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} game_id={self.game_id} pick={self.pick}>"

    def update_result(self):
        """Update pick result after game completion"""
        if not self.game or not self.game.is_final:
            return

        # A tie matches neither side
        self.is_correct = self.pick == self.game.winner

    @staticmethod
    def place(user_id, game, selection, now=None):
        """
        Create or change a user's pick on a game.

        Returns (pick, message); pick is None when the pick was rejected.
        The caller commits.
        """
        if selection not in Pick.SIDES:
            return None, "Pick must be 'home' or 'away'"

        if not game.is_pickable(now):
            return None, "Game has already started"

        # Lazy import to avoid circular imports
        from dailypicks.utils.timezone_utils import get_utc_time

        existing = Pick.query.filter_by(user_id=user_id, game_id=game.id).first()

        if existing:
            if existing.pick == selection:
                return existing, "Pick unchanged"
            existing.pick = selection
            existing.locked_at = now or get_utc_time()
            return existing, "Pick updated"

        pick = Pick(
            user_id=user_id,
            game_id=game.id,
            slate_id=game.slate_id,
            pick=selection,
            locked_at=now or get_utc_time(),
        )
        db.session.add(pick)
        return pick, "Pick created"

    @staticmethod
    def remove(user_id, game, now=None):
        """Delete a user's pick before the game starts; returns (removed, message)"""
        if not game.is_pickable(now):
            return False, "Game has already started"

        existing = Pick.query.filter_by(user_id=user_id, game_id=game.id).first()
        if not existing:
            return False, "No pick to remove"

        db.session.delete(existing)
        return True, "Pick removed"

    def to_dict(self):
        """Convert pick to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "game_id": self.game_id,
            "slate_id": self.slate_id,
            "pick": self.pick,
            "is_correct": self.is_correct,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
        }

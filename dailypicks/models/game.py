from datetime import datetime, timezone

from dailypicks import db


class Game(db.Model):
    __tablename__ = "games"

    STATUS_UPCOMING = "upcoming"
    STATUS_LIVE = "live"
    STATUS_FINAL = "final"
    # Status only ever moves forward through this order
    STATUS_ORDER = {STATUS_UPCOMING: 0, STATUS_LIVE: 1, STATUS_FINAL: 2}

    WINNER_HOME = "home"
    WINNER_AWAY = "away"
    WINNER_TIE = "tie"

    id = db.Column(db.Integer, primary_key=True)
    slate_id = db.Column(db.Integer, db.ForeignKey("slates.id"), nullable=False)

    # Provider identification
    external_id = db.Column(db.String(64), index=True)
    sport = db.Column(db.String(20), nullable=False)

    # Teams
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)
    home_team_abbr = db.Column(db.String(10))
    away_team_abbr = db.Column(db.String(10))

    # Game timing (stored as UTC)
    commence_time = db.Column(db.DateTime, nullable=False)

    # Decimal moneyline odds at slate build time
    home_odds = db.Column(db.Float)
    away_odds = db.Column(db.Float)

    # Scores
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    winner = db.Column(db.String(10))
    status = db.Column(db.String(20), nullable=False, default=STATUS_UPCOMING)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="game", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_game_slate_status", "slate_id", "status"),
        db.Index("idx_game_commence_time", "commence_time"),
        db.CheckConstraint(
            "status IN ('upcoming', 'live', 'final')", name="valid_game_status"
        ),
        # Winner is set if and only if the game is final
        db.CheckConstraint(
            "(status = 'final' AND winner IS NOT NULL) "
            "OR (status != 'final' AND winner IS NULL)",
            name="winner_iff_final",
        ),
    )

    def __repr__(self):
        return f"<Game {self.away_team_abbr or self.away_team} @ {self.home_team_abbr or self.home_team} {self.status}>"

    @property
    def is_final(self):
        return self.status == self.STATUS_FINAL

    @property
    def is_live(self):
        return self.status == self.STATUS_LIVE

    @property
    def matchup(self):
        return f"{self.away_team_abbr or self.away_team} @ {self.home_team_abbr or self.home_team}"

    @staticmethod
    def decide_winner(home_score, away_score):
        """Winner side for a completed game; equal scores are a tie"""
        if home_score > away_score:
            return Game.WINNER_HOME
        if away_score > home_score:
            return Game.WINNER_AWAY
        return Game.WINNER_TIE

    def has_started(self, now=None):
        """Check if game has started (by status or by the clock)"""
        if self.status != self.STATUS_UPCOMING:
            return True
        if not self.commence_time:
            return False

        # Lazy import to avoid circular imports
        from dailypicks.utils.timezone_utils import ensure_utc, get_utc_time

        now = now or get_utc_time()
        return now >= ensure_utc(self.commence_time)

    def is_pickable(self, now=None):
        """Picks may change only while the game is upcoming and not started"""
        return not self.has_started(now)

    def apply_score(self, home_score, away_score, completed):
        """
        Apply a normalized score record to this game.

        Returns the status the game moved to ("live" or "final"), or None when
        nothing changed. Never moves a game backwards: a final game ignores
        further records. Going final stamps the winner and grades every pick.
        """
        if self.is_final:
            return None

        if home_score is None or away_score is None:
            return None

        if completed:
            self.home_score = home_score
            self.away_score = away_score
            self.winner = Game.decide_winner(home_score, away_score)
            self.status = self.STATUS_FINAL
            self.grade_picks()
            return self.STATUS_FINAL

        if (
            self.is_live
            and self.home_score == home_score
            and self.away_score == away_score
        ):
            return None

        self.home_score = home_score
        self.away_score = away_score
        self.status = self.STATUS_LIVE
        return self.STATUS_LIVE

    def grade_picks(self):
        """Grade all picks on this game; returns the number graded"""
        if not self.is_final:
            return 0

        # NOTE: picks is lazy="dynamic", so we need .all() to get actual list
        picks = self.picks.all()
        for pick in picks:
            pick.update_result()
        return len(picks)

    def to_dict(self):
        """Convert game to dictionary for API responses"""
        return {
            "id": self.id,
            "slate_id": self.slate_id,
            "external_id": self.external_id,
            "sport": self.sport,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_team_abbr": self.home_team_abbr,
            "away_team_abbr": self.away_team_abbr,
            "commence_time": (
                self.commence_time.isoformat() if self.commence_time else None
            ),
            "home_odds": self.home_odds,
            "away_odds": self.away_odds,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "winner": self.winner,
            "status": self.status,
            "is_pickable": self.is_pickable(),
        }

"""
Leaderboard queries

Read-only views over persisted DailyScore, Streak and Pick rows.
"""

from sqlalchemy import func

from dailypicks import db
from dailypicks.models import DailyScore, Pick, Profile, Streak

RESULT_BLOCKS = {True: "🟩", False: "🟥", None: "⬜"}


def all_time_leaderboard(limit=None):
    """Every user with a DailyScore, ranked by total points"""
    rows = (
        db.session.query(
            DailyScore.user_id,
            func.sum(DailyScore.total_points).label("total_points"),
            func.count(DailyScore.id).label("days_played"),
            func.sum(DailyScore.correct_picks).label("total_correct"),
            func.sum(DailyScore.total_picks).label("total_picks"),
        )
        .group_by(DailyScore.user_id)
        .order_by(func.sum(DailyScore.total_points).desc(), DailyScore.user_id.asc())
    )
    if limit:
        rows = rows.limit(limit)
    rows = rows.all()

    user_ids = [row.user_id for row in rows]
    profiles = {
        p.id: p for p in Profile.query.filter(Profile.id.in_(user_ids)).all()
    } if user_ids else {}
    streaks = {
        s.user_id: s for s in Streak.query.filter(Streak.user_id.in_(user_ids)).all()
    } if user_ids else {}

    entries = []
    for rank, row in enumerate(rows, start=1):
        profile = profiles.get(row.user_id)
        streak = streaks.get(row.user_id)
        total_picks = int(row.total_picks or 0)
        total_correct = int(row.total_correct or 0)
        entries.append(
            {
                "rank": rank,
                "user_id": row.user_id,
                "display_name": profile.name if profile else "Unknown",
                "total_points": int(row.total_points or 0),
                "days_played": int(row.days_played or 0),
                "total_correct": total_correct,
                "total_picks": total_picks,
                "accuracy": round(total_correct / total_picks * 100, 1) if total_picks else 0.0,
                "current_streak": streak.current_streak if streak else 0,
                "longest_streak": streak.longest_streak if streak else 0,
            }
        )
    return entries


def daily_leaderboard(slate):
    """
    Scores for one slate with a result block per game in slate order:
    green for a correct pick, red for a miss, white for no pick or ungraded.
    Ordered by correct picks, then points.
    """
    games = slate.games.all()
    scores = DailyScore.query.filter_by(slate_id=slate.id).all()

    picks_by_user = {}
    for pick in Pick.query.filter_by(slate_id=slate.id).all():
        picks_by_user.setdefault(pick.user_id, {})[pick.game_id] = pick

    entries = []
    for score in scores:
        user_picks = picks_by_user.get(score.user_id, {})
        blocks = []
        for game in games:
            pick = user_picks.get(game.id)
            blocks.append(RESULT_BLOCKS[pick.is_correct if pick else None])

        entries.append(
            {
                "user_id": score.user_id,
                "display_name": score.user.name if score.user else "Unknown",
                "correct_picks": score.correct_picks,
                "total_picks": score.total_picks,
                "total_points": score.total_points,
                "blocks": blocks,
                "grid": "".join(blocks),
            }
        )

    entries.sort(key=lambda e: (-e["correct_picks"], -e["total_points"], e["user_id"]))
    for rank, entry in enumerate(entries, start=1):
        entry["rank"] = rank
    return entries


def slate_participation(slate, teaser_names=2):
    """
    Who is playing a slate: pick counts per user, never the picks themselves.

    Players who picked every game ("locked in") come first, then by count.
    """
    counts = (
        db.session.query(Pick.user_id, func.count(Pick.id))
        .filter(Pick.slate_id == slate.id)
        .group_by(Pick.user_id)
        .all()
    )
    if not counts:
        return {"count": 0, "players": [], "names": []}

    total_games = slate.games.count()
    pick_counts = dict(counts)
    profiles = Profile.query.filter(Profile.id.in_(list(pick_counts))).all()

    players = [
        {
            "display_name": profile.name,
            "picks_count": pick_counts.get(profile.id, 0),
            "total_games": total_games,
            "locked_in": pick_counts.get(profile.id, 0) >= total_games,
        }
        for profile in profiles
    ]
    players.sort(key=lambda p: (not p["locked_in"], -p["picks_count"]))

    return {
        "count": len(pick_counts),
        "players": players,
        "names": [p["display_name"].split(" ")[0] for p in players[:teaser_names]],
    }

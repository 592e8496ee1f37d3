"""
Points Calculator for Daily Slate Pick'em

Turns a user's result on one slate into a point breakdown. Pure: no
database access, no side effects. Aggregation across slates lives in
dailypicks/services/leaderboard.py.
"""

POINTS = {
    "BASE_PARTICIPATION": 10,  # just for playing
    "PER_CORRECT": 15,
    "THRESHOLD_5_OF_7": 20,
    "THRESHOLD_6_OF_7": 35,
    "PERFECT_7_OF_7": 100,
    "STREAK_3": 25,
    "STREAK_7": 100,
    "STREAK_14": 250,
    "STREAK_30": 1000,
}

# Threshold bonuses and the perfect bonus need a full slate
FULL_SLATE_SIZE = 7

# Highest threshold first; only the first match applies
STREAK_TIERS = [
    (30, POINTS["STREAK_30"]),
    (14, POINTS["STREAK_14"]),
    (7, POINTS["STREAK_7"]),
    (3, POINTS["STREAK_3"]),
]


def streak_bonus_for(current_streak):
    """Bonus for the single highest streak threshold reached"""
    for threshold, bonus in STREAK_TIERS:
        if current_streak >= threshold:
            return bonus
    return 0


def calculate_points(correct_picks, total_picks, current_streak):
    """
    Calculate the point breakdown for one user on one slate.

    Args:
        correct_picks: Number of graded-correct picks
        total_picks: Number of picks the user made on the slate
        current_streak: Consecutive days played including this slate

    Returns:
        dict with base_points, performance_points, perfect_bonus,
        streak_bonus and total_points
    """
    base_points = POINTS["BASE_PARTICIPATION"]
    performance_points = correct_picks * POINTS["PER_CORRECT"]

    # Threshold bonuses stack: 6/7 earns both
    if total_picks >= FULL_SLATE_SIZE:
        if correct_picks >= 5:
            performance_points += POINTS["THRESHOLD_5_OF_7"]
        if correct_picks >= 6:
            performance_points += POINTS["THRESHOLD_6_OF_7"]

    perfect_bonus = 0
    if correct_picks == total_picks and total_picks >= FULL_SLATE_SIZE:
        perfect_bonus = POINTS["PERFECT_7_OF_7"]

    streak_bonus = streak_bonus_for(current_streak)

    return {
        "base_points": base_points,
        "performance_points": performance_points,
        "perfect_bonus": perfect_bonus,
        "streak_bonus": streak_bonus,
        "total_points": base_points + performance_points + perfect_bonus + streak_bonus,
    }

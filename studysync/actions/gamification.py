from datetime import datetime, timezone, timedelta
from flask import current_app
from studysync.extensions import db
from studysync.errors import ValidationError
from studysync.models.user import User
from studysync.actions import server_action, require_user

DECK_CREATED_POINTS = 10
QUIZ_CREATED_POINTS = 10
CARD_CREATED_POINTS = 2
QUESTION_CREATED_POINTS = 2
DAILY_REWARD_POINTS = 10

POMODORO_MAX_MINUTES = 120
POMODORO_MAX_GOAL = 24

# Streak only grows while below this value
STREAK_CAP = 2

LEAGUES = [
    (15000, "Platinum", "🏆"),
    (10000, "Gold", "🥇"),
    (5000, "Silver", "🥈"),
    (0, "Bronze", "🥉"),
]


def _as_utc(dt):
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_league(points):
    points = points or 0
    for threshold, name, symbol in LEAGUES:
        if points >= threshold:
            return {"name": name, "symbol": symbol}
    return {"name": "Bronze", "symbol": "🥉"}


def apply_points(user, points, commit=True):
    """
    Add ``points`` to ``user`` and advance their streak.

    The streak grows by one when the last activity was on an earlier calendar
    day (or never happened) and the streak is still below STREAK_CAP.
    """
    now = datetime.now(timezone.utc)
    last = _as_utc(user.last_pomodoro)

    if (last is None or (now.date() - last.date()).days >= 1) and (user.streak or 0) < STREAK_CAP:
        user.streak = (user.streak or 0) + 1

    user.points = (user.points or 0) + points
    user.last_pomodoro = now
    if commit:
        db.session.commit()
    return user.points


def _bounded_int(value, low, high, label):
    if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
        raise ValidationError(f"{label} must be an integer between {low} and {high}")
    return value


@server_action("gamification.complete_pomodoro")
def complete_pomodoro(minutes):
    """
    Record a finished focus session.

    Awards one point per session minute, advances the streak like any other
    activity and counts the session towards the user's pomodoro goal.
    """
    user = require_user()
    minutes = _bounded_int(minutes, 1, POMODORO_MAX_MINUTES, "Minutes")

    if user.custom_user_goal:
        user.progress_on_custom = (user.progress_on_custom or 0) + 1
    new_points = apply_points(user, minutes)
    current_app.logger.info(f"User {user.id} completed a {minutes} minute pomodoro")

    return {
        "success": True,
        "new_points": new_points,
        "progress_on_custom": user.progress_on_custom,
        "goal_reached": bool(user.custom_user_goal) and user.progress_on_custom >= user.custom_user_goal,
        "message": "Points updated successfully",
    }


@server_action("gamification.save_pomodoro_goal")
def save_pomodoro_goal(user_goal):
    """Set the number of pomodoros to aim for. A goal of 0 clears the goal and its progress."""
    user = require_user()
    user.custom_user_goal = _bounded_int(user_goal, 0, POMODORO_MAX_GOAL, "Goal")
    if user.custom_user_goal == 0:
        user.progress_on_custom = 0
    db.session.commit()
    return {"success": True, "message": "Pomodoro goal saved successfully!"}


@server_action("gamification.check_daily_reward")
def check_daily_reward():
    """Grant the once-only daily goal reward. Resets a streak idle for a day or more."""
    user = require_user()
    now = datetime.now(timezone.utc)
    last = _as_utc(user.last_pomodoro)

    if last is not None and now - last >= timedelta(days=1):
        user.streak = 0

    if not user.daily_goal:
        user.daily_goal = True
        user.points = (user.points or 0) + DAILY_REWARD_POINTS
        db.session.commit()
        return True

    db.session.commit()
    return False


@server_action("gamification.get_leaderboard_info")
def get_leaderboard_info():
    user = require_user()

    top_players = User.query.order_by(User.points.desc(), User.id.asc()).limit(10).all()

    ahead = User.query.filter(
        db.or_(
            User.points > user.points,
            db.and_(User.points == user.points, User.id < user.id),
        )
    ).count()

    return {
        "top_players": [
            {
                "username": p.username,
                "points": p.points,
                "league": get_league(p.points),
            }
            for p in top_players
        ],
        "user_rank": ahead + 1,
        "username": user.username,
        "points": user.points or 0,
        "streak": user.streak or 0,
        "user_league": get_league(user.points),
    }

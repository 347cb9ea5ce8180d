"""
Tests for points, streaks, daily rewards and the leaderboard.
"""

from datetime import datetime, timedelta, timezone

import pytest

from studysync.actions import gamification
from studysync.actions.gamification import apply_points, get_league
from studysync.errors import ValidationError
from studysync.extensions import db


@pytest.mark.parametrize('points, league', [
    (0, 'Bronze'),
    (4999, 'Bronze'),
    (5000, 'Silver'),
    (9999, 'Silver'),
    (10000, 'Gold'),
    (15000, 'Platinum'),
    (None, 'Bronze'),
])
def test_get_league(points, league):
    assert get_league(points)['name'] == league


class TestPoints:

    def test_complete_pomodoro_awards_minutes(self, user_id, login_as):
        with login_as(user_id) as user:
            result = gamification.complete_pomodoro(25)
            assert result['success'] is True
            assert result['new_points'] == 25
            assert result['goal_reached'] is False
            assert user.points == 25
            assert user.streak == 1
            assert user.last_pomodoro is not None

    @pytest.mark.parametrize('minutes', ['10', 0, -5, 121, 10 ** 6, True, 2.5])
    def test_complete_pomodoro_rejects_out_of_range_minutes(self, user_id, login_as, minutes):
        with login_as(user_id) as user:
            with pytest.raises(ValidationError):
                gamification.complete_pomodoro(minutes)
            assert user.points == 0

    def test_points_cannot_be_set_remotely(self, auth_client):
        resp = auth_client.post('/actions/gamification.add_points', json={'points': 10 ** 9})
        assert resp.status_code == 404
        assert auth_client.get('/auth/me').get_json()['user']['points'] == 0

    def test_first_activity_starts_streak(self, user_id, login_as):
        with login_as(user_id) as user:
            apply_points(user, 5)
            assert user.streak == 1

    def test_same_day_activity_keeps_streak(self, user_id, login_as):
        with login_as(user_id) as user:
            apply_points(user, 5)
            apply_points(user, 5)
            assert user.streak == 1
            assert user.points == 10

    def test_next_day_activity_grows_streak_up_to_cap(self, user_id, login_as):
        with login_as(user_id) as user:
            user.streak = 1
            user.last_pomodoro = datetime.now(timezone.utc) - timedelta(days=2)
            db.session.commit()

            apply_points(user, 5)
            assert user.streak == 2

            user.last_pomodoro = datetime.now(timezone.utc) - timedelta(days=2)
            db.session.commit()
            apply_points(user, 5)
            assert user.streak == gamification.STREAK_CAP


class TestPomodoroGoal:

    def test_save_goal(self, user_id, login_as):
        with login_as(user_id) as user:
            result = gamification.save_pomodoro_goal(3)
            assert result == {'success': True, 'message': 'Pomodoro goal saved successfully!'}
            assert user.custom_user_goal == 3
            assert user.progress_on_custom == 0

    def test_sessions_count_towards_goal(self, user_id, login_as):
        with login_as(user_id) as user:
            gamification.save_pomodoro_goal(2)
            assert gamification.complete_pomodoro(25)['goal_reached'] is False
            result = gamification.complete_pomodoro(25)
            assert result['progress_on_custom'] == 2
            assert result['goal_reached'] is True
            assert user.points == 50

    def test_sessions_without_goal_are_not_counted(self, user_id, login_as):
        with login_as(user_id) as user:
            gamification.complete_pomodoro(25)
            assert user.progress_on_custom == 0

    def test_zero_goal_resets_progress(self, user_id, login_as):
        with login_as(user_id) as user:
            gamification.save_pomodoro_goal(4)
            gamification.complete_pomodoro(25)
            gamification.save_pomodoro_goal(0)
            assert user.custom_user_goal == 0
            assert user.progress_on_custom == 0

    @pytest.mark.parametrize('goal', [-1, 25, '3', None])
    def test_invalid_goal(self, user_id, login_as, goal):
        with login_as(user_id):
            with pytest.raises(ValidationError):
                gamification.save_pomodoro_goal(goal)


class TestDailyReward:

    def test_reward_is_granted_once(self, user_id, login_as):
        with login_as(user_id) as user:
            assert gamification.check_daily_reward() is True
            assert user.points == 10
            assert user.daily_goal is True

            assert gamification.check_daily_reward() is False
            assert user.points == 10

    def test_idle_day_resets_streak(self, user_id, login_as):
        with login_as(user_id) as user:
            user.streak = 2
            user.last_pomodoro = datetime.now(timezone.utc) - timedelta(days=2)
            db.session.commit()

            gamification.check_daily_reward()
            assert user.streak == 0

    def test_recent_activity_keeps_streak(self, user_id, login_as):
        with login_as(user_id) as user:
            user.streak = 2
            user.last_pomodoro = datetime.now(timezone.utc) - timedelta(hours=1)
            db.session.commit()

            gamification.check_daily_reward()
            assert user.streak == 2


class TestLeaderboard:

    def test_ranks_and_leagues(self, make_user, login_as):
        make_user(username='ana', points=12000)
        me = make_user(username='me', points=6000)
        make_user(username='bo', points=100)

        with login_as(me):
            info = gamification.get_leaderboard_info()

        assert [p['username'] for p in info['top_players']] == ['ana', 'me', 'bo']
        assert info['top_players'][0]['league']['name'] == 'Gold'
        assert info['user_rank'] == 2
        assert info['username'] == 'me'
        assert info['points'] == 6000
        assert info['user_league'] == {'name': 'Silver', 'symbol': '🥈'}

    def test_top_players_limited_to_ten(self, make_user, login_as):
        ids = [make_user(points=i * 10) for i in range(12)]
        with login_as(ids[0]):
            info = gamification.get_leaderboard_info()
        assert len(info['top_players']) == 10
        assert info['user_rank'] == 12

    def test_ties_rank_earlier_account_first(self, make_user, login_as):
        first = make_user(points=50)
        second = make_user(points=50)
        with login_as(second):
            assert gamification.get_leaderboard_info()['user_rank'] == 2
        with login_as(first):
            assert gamification.get_leaderboard_info()['user_rank'] == 1

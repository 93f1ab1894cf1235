import pytest

from rotation.models import Match, Player, PlayerStat, Schedule, ScheduleConfig


@pytest.fixture
def make_config():
    def _make(num_players=8, num_courts=2, num_rounds=3, **kwargs):
        kwargs.setdefault("attempts", 5)
        kwargs.setdefault("random_seed", 7)
        return ScheduleConfig(
            num_rounds=num_rounds,
            num_players=num_players,
            num_courts=num_courts,
            **kwargs,
        )
    return _make


@pytest.fixture
def hand_schedule():
    """Build a schedule from rounds given as lists of 4-id tuples (team1 first)."""
    def _make(rounds, n):
        roster = {i: Player(id=i, name=f"P{i}") for i in range(1, n + 1)}
        matches = []
        sitting = {}
        for rnd, groups in enumerate(rounds, start=1):
            seated = set()
            for court, ids in enumerate(groups, start=1):
                matches.append(Match(
                    id=len(matches) + 1, round=rnd, court=court,
                    players=tuple(roster[i] for i in ids),
                ))
                seated.update(ids)
            sitting[rnd] = [roster[i] for i in sorted(roster) if i not in seated]
        stats = [PlayerStat(id=p.id, name=p.name) for p in roster.values()]
        return Schedule(matches=matches, player_stats=stats, round_sitting_out=sitting)
    return _make

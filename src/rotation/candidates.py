import random
from itertools import combinations
from typing import Dict, Iterator, List, Optional, Set

from rotation.models import MatchCandidate, PlayerState, ScoringWeights

# Distinct 4-player groups sampled per pick once the pool is larger.
MAX_GROUPS = 150

PARTNER_NEW_BONUS = 500
PARTNER_REPEAT_PENALTY = 500

OPPONENT_NEW_BONUS = 100
OPPONENT_ONCE_BONUS = 30
OPPONENT_REPEAT_PENALTY = 50

BALANCE_AT_MIN_BONUS = 200
BALANCE_NEAR_MIN_BONUS = 50
BALANCE_EXCESS_PENALTY = 300

SAT_OUT_LAST_ROUND_BONUS = 1000
IDLE_ROUND_BONUS = 100

COURT_NEW_BONUS = 10
COURT_REPEAT_PENALTY = 5


def team_splits(group):
    """The 3 ways to split four players into two teams of two."""
    a, b, c, d = group
    return [
        ((a, b), (c, d)),
        ((a, c), (b, d)),
        ((a, d), (b, c)),
    ]


def _valid_group(group, must_play: Set[int]) -> bool:
    if not must_play:
        return True
    members = set(group)
    if len(must_play) >= 4:
        return members <= must_play
    return must_play <= members


def generate_candidates(
    available: List[int],
    courts: List[int],
    must_play: Optional[Set[int]] = None,
    rng: Optional[random.Random] = None,
    limit: int = MAX_GROUPS,
) -> Iterator[MatchCandidate]:
    """Yield 4-player group x team split x open court candidates.

    Every valid group is considered. When there are more than `limit` of them
    and an `rng` is given, `limit` groups are drawn uniformly from all of them;
    without an `rng` the enumeration is exhaustive. Yield order is the
    tie-break order.
    """
    if len(available) < 4 or not courts:
        return
    must_play = must_play or set()
    groups = [g for g in combinations(available, 4) if _valid_group(g, must_play)]
    if rng is not None and len(groups) > limit:
        groups = rng.sample(groups, limit)
    for group in groups:
        for team1, team2 in team_splits(group):
            for court in courts:
                yield MatchCandidate(team1=team1, team2=team2, court=court)


def partnership_score(candidate: MatchCandidate, states: Dict[int, PlayerState]) -> float:
    score = 0
    for p1, p2 in (candidate.team1, candidate.team2):
        times = states[p1].partnerships.get(p2, 0)
        if times == 0:
            score += PARTNER_NEW_BONUS
        else:
            score -= PARTNER_REPEAT_PENALTY * times
    return score


def opposition_score(candidate: MatchCandidate, states: Dict[int, PlayerState]) -> float:
    score = 0
    for p1 in candidate.team1:
        for p2 in candidate.team2:
            times = states[p1].opponents.get(p2, 0)
            if times == 0:
                score += OPPONENT_NEW_BONUS
            elif times == 1:
                score += OPPONENT_ONCE_BONUS
            else:
                score -= OPPONENT_REPEAT_PENALTY * times ** 2
    return score


def balance_score(candidate: MatchCandidate, states: Dict[int, PlayerState], min_count: int) -> float:
    score = 0
    for pid in candidate.player_ids:
        excess = states[pid].match_count - min_count
        if excess == 0:
            score += BALANCE_AT_MIN_BONUS
        elif excess == 1:
            score += BALANCE_NEAR_MIN_BONUS
        else:
            score -= BALANCE_EXCESS_PENALTY * excess
    return score


def rounds_idle(state: PlayerState, round_num: int) -> int:
    """Rounds since the player last played, not counting the current one."""
    return round_num - 1 - state.last_played_round


def must_play_score(candidate: MatchCandidate, states: Dict[int, PlayerState], round_num: int) -> float:
    score = 0
    for pid in candidate.player_ids:
        idle = rounds_idle(states[pid], round_num)
        if round_num > 1 and idle > 0:
            score += SAT_OUT_LAST_ROUND_BONUS
        score += IDLE_ROUND_BONUS * idle
    return score


def court_score(candidate: MatchCandidate, states: Dict[int, PlayerState]) -> float:
    score = 0
    for pid in candidate.player_ids:
        if candidate.court in states[pid].courts_played:
            score -= COURT_REPEAT_PENALTY
        else:
            score += COURT_NEW_BONUS
    return score


def score_candidate(
    candidate: MatchCandidate,
    round_num: int,
    states: Dict[int, PlayerState],
    weights: ScoringWeights,
    min_count: Optional[int] = None,
) -> float:
    """Weighted desirability of a candidate; higher is better. Reads state only."""
    if min_count is None:
        min_count = min(s.match_count for s in states.values())
    return (
        weights.balance * balance_score(candidate, states, min_count)
        + weights.must_play * must_play_score(candidate, states, round_num)
        + weights.partnership * partnership_score(candidate, states)
        + weights.opposition * opposition_score(candidate, states)
        + weights.court * court_score(candidate, states)
    )


def sat_out_previous_round(states: Dict[int, PlayerState], player_ids, round_num: int) -> Set[int]:
    if round_num <= 1:
        return set()
    return {pid for pid in player_ids if states[pid].last_played_round < round_num - 1}

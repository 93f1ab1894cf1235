"""Whole-schedule fitness.

`score_schedule` is the only acceptance test used when picking the best
multi-start attempt and when deciding whether a refinement swap is kept, so
it has to stay deterministic for a given schedule.
"""
from collections import defaultdict
from itertools import combinations
from typing import Dict, List, Tuple

from rotation.models import Schedule

BASELINE = 100000

MATCH_SPREAD_PENALTY = 1000
CONSECUTIVE_SIT_OUT_PENALTY = 500

OPPONENT_RANGE_PENALTY = 200
OPPONENT_VARIANCE_PENALTY = 100
OPPONENT_NEVER_MET_PENALTY = 50
OPPONENT_OVERPLAYED_PENALTY = 150
OPPONENT_OVERPLAYED_AT = 3
OPPONENT_EVEN_RANGE_BONUS = 500
OPPONENT_ALL_MET_BONUS = 500

PARTNER_REPEAT_PENALTY = 5000


def pair_key(a: int, b: int) -> Tuple[int, int]:
    return (a, b) if a < b else (b, a)


def pair_counts(schedule: Schedule) -> Tuple[Dict[Tuple[int, int], int], Dict[Tuple[int, int], int]]:
    """Partner and opponent counts keyed by unordered player-id pair."""
    partners = defaultdict(int)
    opponents = defaultdict(int)
    for match in schedule.matches:
        ids = match.player_ids
        partners[pair_key(ids[0], ids[1])] += 1
        partners[pair_key(ids[2], ids[3])] += 1
        for a in ids[:2]:
            for b in ids[2:]:
                opponents[pair_key(a, b)] += 1
    return partners, opponents


def match_counts(schedule: Schedule) -> Dict[int, int]:
    counts = {s.id: 0 for s in schedule.player_stats}
    for match in schedule.matches:
        for pid in match.player_ids:
            counts[pid] = counts.get(pid, 0) + 1
    return counts


def longest_sit_out_runs(schedule: Schedule) -> Dict[int, int]:
    longest = {s.id: 0 for s in schedule.player_stats}
    current = dict.fromkeys(longest, 0)
    for rnd in sorted(schedule.round_sitting_out):
        sitting = {p.id for p in schedule.round_sitting_out[rnd]}
        for pid in longest:
            if pid in sitting:
                current[pid] += 1
                longest[pid] = max(longest[pid], current[pid])
            else:
                current[pid] = 0
    return longest


def _variance(values: List[int]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def score_schedule(schedule: Schedule) -> float:
    score = float(BASELINE)

    counts = match_counts(schedule)
    if counts:
        score -= MATCH_SPREAD_PENALTY * (max(counts.values()) - min(counts.values()))

    for run in longest_sit_out_runs(schedule).values():
        if run > 1:
            score -= CONSECUTIVE_SIT_OUT_PENALTY * run ** 3

    partners, opponents = pair_counts(schedule)

    ids = sorted(counts)
    opponent_values = [opponents.get(pair, 0) for pair in combinations(ids, 2)]
    if opponent_values:
        spread = max(opponent_values) - min(opponent_values)
        never_met = sum(1 for v in opponent_values if v == 0)
        score -= OPPONENT_RANGE_PENALTY * spread
        score -= OPPONENT_VARIANCE_PENALTY * _variance(opponent_values)
        score -= OPPONENT_NEVER_MET_PENALTY * never_met
        score -= OPPONENT_OVERPLAYED_PENALTY * sum(1 for v in opponent_values if v >= OPPONENT_OVERPLAYED_AT)
        if spread <= 1:
            score += OPPONENT_EVEN_RANGE_BONUS
        if never_met == 0:
            score += OPPONENT_ALL_MET_BONUS

    for times in partners.values():
        if times > 1:
            score -= PARTNER_REPEAT_PENALTY * (times - 1)

    return score

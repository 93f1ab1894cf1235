import logging
import random
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from config import ROTATION_ATTEMPTS, ROTATION_TIME_BUDGET, ROTATION_WORKERS
from rotation.candidates import generate_candidates, sat_out_previous_round, score_candidate
from rotation.errors import ScheduleConfigError, ScheduleGenerationError
from rotation.models import (
    Match, MatchCandidate, Player, PlayerStat, PlayerState,
    Schedule, ScheduleConfig, ScoringWeights,
)
from rotation.scoring import match_counts, score_schedule

logger = logging.getLogger(__name__)

PLAYERS_PER_MATCH = 4


def validate_config(config: ScheduleConfig):
    if config.num_players < PLAYERS_PER_MATCH:
        raise ScheduleConfigError(f"At least {PLAYERS_PER_MATCH} players are needed, got {config.num_players}")
    if config.num_rounds < 1:
        raise ScheduleConfigError(f"Number of rounds must be positive, got {config.num_rounds}")
    if config.num_courts < 1:
        raise ScheduleConfigError(f"Number of courts must be positive, got {config.num_courts}")
    if config.attempts is not None and config.attempts < 1:
        raise ScheduleConfigError(f"Number of attempts must be positive, got {config.attempts}")
    if config.player_names and len(config.player_names) > config.num_players:
        raise ScheduleConfigError(
            f"{len(config.player_names)} names given for {config.num_players} players"
        )
    for name, value in vars(config.scoring_weights).items():
        if value < 0:
            raise ScheduleConfigError(f"Scoring weight '{name}' must not be negative")


def rounds_for_session(session_start: str, session_end: str, match_length: int) -> int:
    """How many rounds of `match_length` minutes fit between two HH:MM times."""
    try:
        start = datetime.strptime(session_start, "%H:%M")
        end = datetime.strptime(session_end, "%H:%M")
    except ValueError as exc:
        raise ScheduleConfigError(f"Session times must be HH:MM: {exc}") from exc
    if match_length <= 0:
        raise ScheduleConfigError("Match length must be positive")
    minutes = (end - start).total_seconds() / 60
    if minutes <= 0:
        raise ScheduleConfigError("Session end must be after session start")
    return int(minutes // match_length)


def make_players(config: ScheduleConfig) -> List[Player]:
    names = config.player_names or []
    players = []
    for i in range(config.num_players):
        name = names[i].strip() if i < len(names) and names[i] and names[i].strip() else f"Player {i + 1}"
        players.append(Player(id=i + 1, name=name))
    return players


def effective_weights(config: ScheduleConfig) -> ScoringWeights:
    weights = replace(config.scoring_weights)
    if not config.balance_match_counts:
        weights.balance = 0.0
    if not config.avoid_consecutive_sitting_out:
        weights.must_play = 0.0
    return weights


def commit_candidate(states: Dict[int, PlayerState], candidate: MatchCandidate, round_num: int):
    for pid in candidate.player_ids:
        state = states[pid]
        state.match_count += 1
        state.last_played_round = round_num
        state.courts_played.add(candidate.court)
    for team in (candidate.team1, candidate.team2):
        a, b = team
        states[a].partnerships[b] = states[a].partnerships.get(b, 0) + 1
        states[b].partnerships[a] = states[b].partnerships.get(a, 0) + 1
    for a in candidate.team1:
        for b in candidate.team2:
            states[a].opponents[b] = states[a].opponents.get(b, 0) + 1
            states[b].opponents[a] = states[b].opponents.get(a, 0) + 1


def assemble_round(
    round_num: int,
    player_ids: List[int],
    num_courts: int,
    states: Dict[int, PlayerState],
    weights: ScoringWeights,
    rng: random.Random,
    avoid_consecutive_sitting_out: bool = True,
) -> Tuple[List[MatchCandidate], List[int]]:
    """Greedily fill one round; returns the committed candidates and who sits out."""
    available = list(player_ids)
    rng.shuffle(available)
    open_courts = list(range(1, num_courts + 1))
    rng.shuffle(open_courts)

    picked = []
    # every step either seats a court or stops
    for _ in range(num_courts):
        if not open_courts or len(available) < PLAYERS_PER_MATCH:
            break
        must_play = set()
        if avoid_consecutive_sitting_out:
            must_play = sat_out_previous_round(states, available, round_num)
        min_count = min(s.match_count for s in states.values())
        best = max(
            generate_candidates(available, open_courts, must_play, rng),
            key=lambda c: score_candidate(c, round_num, states, weights, min_count),
            default=None,
        )
        if best is None:
            break
        commit_candidate(states, best, round_num)
        picked.append(best)
        seated = set(best.player_ids)
        available = [pid for pid in available if pid not in seated]
        open_courts.remove(best.court)

    return picked, sorted(available)


def build_schedule(
    players: List[Player],
    config: ScheduleConfig,
    weights: ScoringWeights,
    rng: random.Random,
) -> Schedule:
    """One complete greedy schedule; player state carries over from round to round."""
    by_id = {p.id: p for p in players}
    states = {p.id: PlayerState() for p in players}
    ids = [p.id for p in players]

    matches = []
    sitting_out = {}
    for round_num in range(1, config.num_rounds + 1):
        picked, sitting = assemble_round(
            round_num, ids, config.num_courts, states, weights, rng,
            config.avoid_consecutive_sitting_out,
        )
        for candidate in sorted(picked, key=lambda c: c.court):
            matches.append(Match(
                id=len(matches) + 1,
                round=round_num,
                court=candidate.court,
                players=tuple(by_id[pid] for pid in candidate.player_ids),
            ))
        sitting_out[round_num] = [by_id[pid] for pid in sitting]
        logger.debug("Round %d: %d matches, sitting out %s",
                     round_num, len(picked), [by_id[pid].name for pid in sitting])

    return Schedule(
        matches=matches,
        player_stats=[PlayerStat(id=p.id, name=p.name, match_count=states[p.id].match_count) for p in players],
        round_sitting_out=sitting_out,
    )


def multi_start(
    players: List[Player],
    config: ScheduleConfig,
    rng: random.Random,
    attempts: int,
    workers: int = 1,
    time_budget: float = 0,
) -> Tuple[Schedule, float]:
    """Build `attempts` independent schedules and keep the best-scoring one.

    Attempt seeds are drawn up front so the outcome does not depend on
    `workers`. Equal scores go to the earlier attempt.
    """
    weights = effective_weights(config)
    seeds = [rng.getrandbits(64) for _ in range(attempts)]
    deadline = time.monotonic() + time_budget if time_budget > 0 else None

    def attempt(index: int) -> Optional[Tuple[Schedule, float]]:
        if index > 0 and deadline is not None and time.monotonic() > deadline:
            return None
        schedule = build_schedule(players, config, weights, random.Random(seeds[index]))
        return schedule, score_schedule(schedule)

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(attempt, range(attempts)))
    else:
        outcomes = [attempt(i) for i in range(attempts)]

    skipped = sum(1 for o in outcomes if o is None)
    if skipped:
        logger.warning("Time budget of %.1fs reached, skipped %d of %d attempts", time_budget, skipped, attempts)

    best = None
    for index, outcome in enumerate(outcomes):
        if outcome is None:
            continue
        schedule, score = outcome
        if not schedule.matches:
            logger.warning("Attempt %d produced no matches", index)
            continue
        if best is None or score > best[1]:
            best = outcome
    if best is None:
        raise ScheduleGenerationError("Could not generate a schedule: no attempt produced any match")
    return best


def round_index(schedule: Schedule) -> Dict[int, Set[int]]:
    """Ids of the players seated in each round."""
    rounds = defaultdict(set)
    for m in schedule.matches:
        rounds[m.round].update(m.player_ids)
    return rounds


def swap_is_valid(
    schedule: Schedule,
    match: Match,
    slot: int,
    other: Match,
    other_slot: int,
    rounds: Optional[Dict[int, Set[int]]] = None,
) -> bool:
    """Whether swapping the two slots keeps 4 distinct players per match and one appearance per round.

    `rounds` is a `round_index` of the schedule; it is rebuilt when omitted.
    """
    if not (0 <= slot < PLAYERS_PER_MATCH and 0 <= other_slot < PLAYERS_PER_MATCH):
        return False
    if match is other:
        return slot != other_slot
    a = match.players[slot]
    b = other.players[other_slot]
    if a.id == b.id:
        return False
    if match.round == other.round:
        return True
    if rounds is None:
        rounds = round_index(schedule)
    # across rounds each player must be sitting out the round they move into
    return b.id not in rounds[match.round] and a.id not in rounds[other.round]


def apply_swap(
    schedule: Schedule,
    match: Match,
    slot: int,
    other: Match,
    other_slot: int,
    rounds: Optional[Dict[int, Set[int]]] = None,
):
    """Swap in place; callers check `swap_is_valid` first. Applying twice restores the schedule.

    A `rounds` index passed in is kept in step with the swap.
    """
    if match is other:
        players = list(match.players)
        players[slot], players[other_slot] = players[other_slot], players[slot]
        match.players = tuple(players)
        return
    a = match.players[slot]
    b = other.players[other_slot]
    first = list(match.players)
    second = list(other.players)
    first[slot], second[other_slot] = b, a
    match.players = tuple(first)
    other.players = tuple(second)
    if match.round != other.round:
        sitting = schedule.round_sitting_out
        sitting[match.round] = sorted(
            [p for p in sitting.get(match.round, []) if p.id != b.id] + [a], key=lambda p: p.id)
        sitting[other.round] = sorted(
            [p for p in sitting.get(other.round, []) if p.id != a.id] + [b], key=lambda p: p.id)
        if rounds is not None:
            rounds[match.round].discard(a.id)
            rounds[match.round].add(b.id)
            rounds[other.round].discard(b.id)
            rounds[other.round].add(a.id)


def refine_schedule(schedule: Schedule) -> Tuple[Schedule, float]:
    """First-improvement hill climbing over two-player swaps between matches.

    Works on the given schedule in place and stops after a full pass without an
    improving swap.
    """
    current = score_schedule(schedule)
    matches = schedule.matches
    rounds = round_index(schedule)
    passes = 0
    improved = True
    while improved:
        improved = False
        passes += 1
        for i in range(len(matches)):
            for j in range(i + 1, len(matches)):
                m1, m2 = matches[i], matches[j]
                for s1 in range(PLAYERS_PER_MATCH):
                    for s2 in range(PLAYERS_PER_MATCH):
                        if not swap_is_valid(schedule, m1, s1, m2, s2, rounds):
                            continue
                        apply_swap(schedule, m1, s1, m2, s2, rounds)
                        score = score_schedule(schedule)
                        if score > current:
                            current = score
                            improved = True
                        else:
                            apply_swap(schedule, m1, s1, m2, s2, rounds)
    logger.debug("Refinement finished after %d passes", passes)
    return schedule, current


def generate_schedule(config: ScheduleConfig) -> Schedule:
    validate_config(config)
    rng = random.Random(config.random_seed)
    players = make_players(config)
    attempts = config.attempts or ROTATION_ATTEMPTS

    logger.info("Generating schedule: %d players, %d courts, %d rounds, %d attempts",
                config.num_players, config.num_courts, config.num_rounds, attempts)

    started = time.monotonic()
    best, best_score = multi_start(
        players, config, rng, attempts,
        workers=ROTATION_WORKERS, time_budget=ROTATION_TIME_BUDGET,
    )
    if config.refine:
        best, refined_score = refine_schedule(best)
        logger.info("Refinement improved score by %.1f", refined_score - best_score)
        best_score = refined_score

    counts = match_counts(best)
    for stat in best.player_stats:
        stat.match_count = counts.get(stat.id, 0)

    logger.info("Schedule ready: %d matches, score %.1f, %.2fs",
                len(best.matches), best_score, time.monotonic() - started)
    return best

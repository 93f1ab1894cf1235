import copy
import csv
import math
from io import StringIO
from typing import Dict, List

from rotation.errors import ScheduleEditError
from rotation.functions import apply_swap, swap_is_valid
from rotation.models import Match, MatchResult, Player, Schedule

CSV_HEADERS = [
    "Match ID", "Round", "Court",
    "Team 1 Player 1", "Team 1 Player 2",
    "Team 2 Player 1", "Team 2 Player 2",
    "Sitting Out",
]


def export_schedule_to_csv(schedule: Schedule) -> str:
    """One quoted row per match, after a header row."""
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for match in schedule.matches:
        sitting = schedule.round_sitting_out.get(match.round, [])
        writer.writerow(
            [match.id, match.round, match.court]
            + [p.name for p in match.players]
            + [", ".join(p.name for p in sitting)]
        )
    return buffer.getvalue()


def _get_match(schedule: Schedule, match_id: int) -> Match:
    match = schedule.find_match(match_id)
    if match is None:
        raise ScheduleEditError(f"Match {match_id} not found")
    return match


def record_match_result(schedule: Schedule, match_id: int, team1_score: int, team2_score: int) -> Schedule:
    if team1_score < 0 or team2_score < 0:
        raise ScheduleEditError("Scores must not be negative")
    updated = copy.deepcopy(schedule)
    match = _get_match(updated, match_id)
    match.result = MatchResult(team1_score=team1_score, team2_score=team2_score, completed=True)
    return updated


def clear_match_result(schedule: Schedule, match_id: int) -> Schedule:
    updated = copy.deepcopy(schedule)
    _get_match(updated, match_id).result = None
    return updated


def rename_players(schedule: Schedule, names: Dict[int, str]) -> Schedule:
    known = {s.id for s in schedule.player_stats}
    cleaned = {}
    for pid, name in names.items():
        if pid not in known:
            raise ScheduleEditError(f"Player {pid} not found")
        if not name or not name.strip():
            raise ScheduleEditError(f"Name for player {pid} must not be blank")
        cleaned[pid] = name.strip()

    def renamed(player: Player) -> Player:
        return Player(id=player.id, name=cleaned.get(player.id, player.name))

    updated = copy.deepcopy(schedule)
    for match in updated.matches:
        match.players = tuple(renamed(p) for p in match.players)
    for stat in updated.player_stats:
        stat.name = cleaned.get(stat.id, stat.name)
    updated.round_sitting_out = {
        rnd: [renamed(p) for p in players] for rnd, players in updated.round_sitting_out.items()
    }
    return updated


def swap_players(schedule: Schedule, match_id: int, slot: int, other_match_id: int, other_slot: int) -> Schedule:
    """Swap two player slots, inside one match or between two matches.

    Fairness is not re-checked; only the structural invariants are.
    """
    updated = copy.deepcopy(schedule)
    match = _get_match(updated, match_id)
    other = _get_match(updated, other_match_id)
    if not swap_is_valid(updated, match, slot, other, other_slot):
        raise ScheduleEditError(
            f"Cannot swap slot {slot} of match {match_id} with slot {other_slot} of match {other_match_id}"
        )
    apply_swap(updated, match, slot, other, other_slot)
    return updated


def calculate_standings(schedule: Schedule) -> List[dict]:
    stats = {}
    for s in schedule.player_stats:
        stats[s.id] = {
            "id": s.id,
            "name": s.name,
            "matches_played": 0,
            "wins": 0,
            "losses": 0,
            "points_for": 0,
            "points_against": 0,
        }

    for match in schedule.matches:
        if not match.result or not match.result.completed:
            continue
        score1, score2 = match.result.team1_score, match.result.team2_score
        for team, scored, conceded in ((match.team1, score1, score2), (match.team2, score2, score1)):
            for player in team:
                row = stats.get(player.id)
                if row is None:
                    continue
                row["matches_played"] += 1
                row["points_for"] += scored
                row["points_against"] += conceded
                if scored > conceded:
                    row["wins"] += 1
                elif scored < conceded:
                    row["losses"] += 1

    standings = list(stats.values())
    for row in standings:
        row["points_difference"] = row["points_for"] - row["points_against"]
        played = row["matches_played"]
        row["win_percentage"] = row["wins"] / played * 100 if played else 0.0
    standings.sort(key=lambda x: (-x["win_percentage"], -x["points_difference"]))
    for i, s in enumerate(standings):
        s["rank"] = i + 1
    return standings


def _stats(values: Dict[int, int]) -> dict:
    vals = list(values.values())
    if not vals:
        return {"min": 0, "max": 0, "stddev": 0.0, "range": 0}
    mean = sum(vals) / len(vals)
    var = sum((x - mean) ** 2 for x in vals) / len(vals)
    return {
        "min": min(vals),
        "max": max(vals),
        "stddev": math.sqrt(var),
        "range": max(vals) - min(vals),
    }


def assess_fairness(schedule: Schedule) -> dict:
    """Matches played, sit-outs, partner and opponent variety per player."""
    ids = [s.id for s in schedule.player_stats]
    play_counts = {pid: 0 for pid in ids}
    sit_counts = {pid: 0 for pid in ids}
    partners = {pid: set() for pid in ids}
    opponents = {pid: set() for pid in ids}

    for match in schedule.matches:
        for own, other in ((match.team1, match.team2), (match.team2, match.team1)):
            for p in own:
                play_counts[p.id] += 1
                partners[p.id].update(x.id for x in own if x.id != p.id)
                opponents[p.id].update(x.id for x in other)
    for players in schedule.round_sitting_out.values():
        for p in players:
            sit_counts[p.id] += 1

    partner_counts = {pid: len(partners[pid]) for pid in ids}
    opponent_counts = {pid: len(opponents[pid]) for pid in ids}
    return {
        "matches_played": play_counts,
        "sit_outs": sit_counts,
        "matches_played_stats": _stats(play_counts),
        "sit_outs_stats": _stats(sit_counts),
        "partners_count": partner_counts,
        "partners_stats": _stats(partner_counts),
        "opponents_count": opponent_counts,
        "opponents_stats": _stats(opponent_counts),
    }

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Set, Tuple

# lastPlayedRound for a player who has not played yet; rounds are 1-based
NEVER_PLAYED = 0


def generate_id():
    import uuid
    return str(uuid.uuid4())[:8]


@dataclass
class Player:
    id: int
    name: str


@dataclass
class PlayerState:
    """Per-player counters owned by one generation attempt."""
    match_count: int = 0
    last_played_round: int = NEVER_PLAYED
    partnerships: Dict[int, int] = field(default_factory=dict)  # partner id -> times
    opponents: Dict[int, int] = field(default_factory=dict)     # opponent id -> times
    courts_played: Set[int] = field(default_factory=set)


@dataclass
class MatchResult:
    team1_score: int
    team2_score: int
    completed: bool = True


@dataclass
class Match:
    id: int
    round: int
    court: int
    players: Tuple[Player, Player, Player, Player]  # team1 = 0,1; team2 = 2,3
    result: Optional[MatchResult] = None

    @property
    def team1(self) -> Tuple[Player, Player]:
        return self.players[0], self.players[1]

    @property
    def team2(self) -> Tuple[Player, Player]:
        return self.players[2], self.players[3]

    @property
    def player_ids(self) -> List[int]:
        return [p.id for p in self.players]


@dataclass
class MatchCandidate:
    team1: Tuple[int, int]
    team2: Tuple[int, int]
    court: int

    @property
    def player_ids(self) -> Tuple[int, int, int, int]:
        return self.team1 + self.team2


@dataclass
class ScoringWeights:
    balance: float = 1.0
    must_play: float = 1.0
    partnership: float = 1.0
    opposition: float = 1.0
    court: float = 1.0


@dataclass
class ScheduleConfig:
    num_rounds: int
    num_players: int
    num_courts: int
    player_names: Optional[List[str]] = None
    avoid_consecutive_sitting_out: bool = True
    balance_match_counts: bool = True
    scoring_weights: ScoringWeights = field(default_factory=ScoringWeights)
    random_seed: Optional[int] = None
    attempts: Optional[int] = None   # None -> ROTATION_ATTEMPTS
    refine: bool = True


@dataclass
class PlayerStat:
    id: int
    name: str
    match_count: int = 0


@dataclass
class Schedule:
    matches: List[Match] = field(default_factory=list)
    player_stats: List[PlayerStat] = field(default_factory=list)
    round_sitting_out: Dict[int, List[Player]] = field(default_factory=dict)

    def matches_in_round(self, round_num: int) -> List[Match]:
        return [m for m in self.matches if m.round == round_num]

    def find_match(self, match_id: int) -> Optional[Match]:
        return next((m for m in self.matches if m.id == match_id), None)


@dataclass
class SavedSchedule:
    id: str
    name: str
    config: ScheduleConfig
    schedule: Schedule
    created_at: str


# Serialization. Documents use the camelCase keys the persisting side stores.

def _player_to_dict(player: Player) -> dict:
    return {"id": player.id, "name": player.name}


def schedule_to_dict(schedule: Schedule) -> dict:
    matches = []
    for m in schedule.matches:
        result = None
        if m.result is not None:
            result = {
                "team1Score": m.result.team1_score,
                "team2Score": m.result.team2_score,
                "completed": m.result.completed,
            }
        matches.append({
            "id": m.id,
            "round": m.round,
            "court": m.court,
            "players": [_player_to_dict(p) for p in m.players],
            "result": result,
        })
    return {
        "matches": matches,
        "playerStats": [
            {"playerId": s.id, "playerName": s.name, "matchCount": s.match_count}
            for s in schedule.player_stats
        ],
        # JSON object keys are strings
        "roundSittingOut": {
            str(rnd): [_player_to_dict(p) for p in players]
            for rnd, players in schedule.round_sitting_out.items()
        },
    }


def schedule_from_dict(data: dict) -> Schedule:
    matches = []
    for m in data.get("matches", []):
        result = m.get("result")
        matches.append(Match(
            id=int(m["id"]),
            round=int(m["round"]),
            court=int(m["court"]),
            players=tuple(Player(id=int(p["id"]), name=p["name"]) for p in m["players"]),
            result=MatchResult(
                team1_score=result["team1Score"],
                team2_score=result["team2Score"],
                completed=result.get("completed", True),
            ) if result else None,
        ))
    return Schedule(
        matches=matches,
        player_stats=[
            PlayerStat(id=int(s["playerId"]), name=s["playerName"], match_count=int(s["matchCount"]))
            for s in data.get("playerStats", [])
        ],
        round_sitting_out={
            int(rnd): [Player(id=int(p["id"]), name=p["name"]) for p in players]
            for rnd, players in data.get("roundSittingOut", {}).items()
        },
    )


def config_to_dict(config: ScheduleConfig) -> dict:
    return asdict(config)

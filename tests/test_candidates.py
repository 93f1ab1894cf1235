import random

from rotation.candidates import (
    MAX_GROUPS, PARTNER_NEW_BONUS, PARTNER_REPEAT_PENALTY,
    court_score, generate_candidates, must_play_score, opposition_score,
    partnership_score, sat_out_previous_round, score_candidate, team_splits,
)
from rotation.functions import assemble_round
from rotation.models import MatchCandidate, PlayerState, ScoringWeights


def fresh_states(n):
    return {pid: PlayerState() for pid in range(1, n + 1)}


def test_team_splits_cover_all_pairings():
    splits = team_splits((1, 2, 3, 4))
    assert len(splits) == 3
    partner_sets = {frozenset(map(frozenset, split)) for split in splits}
    assert len(partner_sets) == 3


def test_generate_candidates_is_exhaustive_for_small_pool():
    candidates = list(generate_candidates([1, 2, 3, 4, 5], [1, 2]))
    # C(5,4) groups x 3 splits x 2 courts
    assert len(candidates) == 5 * 3 * 2
    groups = {frozenset(c.player_ids) for c in candidates}
    assert len(groups) == 5


def test_generate_candidates_needs_four_players_and_a_court():
    assert list(generate_candidates([1, 2, 3], [1])) == []
    assert list(generate_candidates([1, 2, 3, 4], [])) == []


def test_generate_candidates_caps_distinct_groups():
    candidates = list(generate_candidates(list(range(1, 13)), [1, 2, 3], rng=random.Random(0), limit=10))
    assert len(candidates) == 10 * 3 * 3
    assert len({frozenset(c.player_ids) for c in candidates}) == 10


def test_without_rng_enumeration_is_exhaustive():
    candidates = list(generate_candidates(list(range(1, 11)), [1], limit=10))
    assert len({frozenset(c.player_ids) for c in candidates}) == 210


def test_capped_pool_spans_the_whole_roster():
    available = list(range(1, 21))
    candidates = list(generate_candidates(available, [1, 2, 3, 4], rng=random.Random(0)))
    groups = {frozenset(c.player_ids) for c in candidates}
    assert len(groups) == MAX_GROUPS
    assert set().union(*groups) == set(available)
    assert frozenset.intersection(*groups) == frozenset()


def test_overplayed_players_are_kept_out_of_a_large_pool():
    weights = ScoringWeights(must_play=0)
    for seed in range(20):
        states = fresh_states(20)
        states[1].match_count = 5
        states[2].match_count = 5
        picked, _ = assemble_round(3, list(range(1, 21)), 1, states, weights, random.Random(seed))
        assert not {1, 2} & set(picked[0].player_ids)


def test_small_must_play_set_is_always_included():
    for c in generate_candidates([1, 2, 3, 4, 5, 6], [1], must_play={5, 6}):
        assert {5, 6} <= set(c.player_ids)


def test_large_must_play_set_restricts_groups_to_it():
    must = {1, 2, 3, 4, 5}
    candidates = list(generate_candidates([1, 2, 3, 4, 5, 6, 7, 8], [1], must_play=must))
    assert candidates
    for c in candidates:
        assert set(c.player_ids) <= must


def test_partnership_score_penalizes_repeats():
    states = fresh_states(4)
    candidate = MatchCandidate(team1=(1, 2), team2=(3, 4), court=1)
    assert partnership_score(candidate, states) == 2 * PARTNER_NEW_BONUS

    states[1].partnerships[2] = 2
    states[2].partnerships[1] = 2
    assert partnership_score(candidate, states) == PARTNER_NEW_BONUS - 2 * PARTNER_REPEAT_PENALTY


def test_opposition_score_grows_worse_with_repeats():
    candidate = MatchCandidate(team1=(1, 2), team2=(3, 4), court=1)
    scores = []
    for times in (0, 1, 2, 3):
        states = fresh_states(4)
        states[1].opponents[3] = times
        scores.append(opposition_score(candidate, states))
    assert scores[0] > scores[1] > scores[2] > scores[3]


def test_must_play_score_favours_players_who_sat_out():
    states = fresh_states(8)
    for pid in (1, 2, 3, 4):
        states[pid].last_played_round = 1
    rested = MatchCandidate(team1=(5, 6), team2=(7, 8), court=1)
    tired = MatchCandidate(team1=(1, 2), team2=(3, 4), court=1)
    assert must_play_score(rested, states, 2) > must_play_score(tired, states, 2)
    assert must_play_score(rested, states, 1) == 0
    assert sat_out_previous_round(states, range(1, 9), 2) == {5, 6, 7, 8}


def test_court_score_prefers_new_courts():
    states = fresh_states(4)
    for pid in states:
        states[pid].courts_played.add(1)
    assert court_score(MatchCandidate((1, 2), (3, 4), 2), states) > court_score(MatchCandidate((1, 2), (3, 4), 1), states)


def test_score_candidate_is_weighted_and_pure():
    states = fresh_states(6)
    states[1].match_count = 3
    candidate = MatchCandidate(team1=(1, 2), team2=(3, 4), court=1)
    zero = ScoringWeights(balance=0, must_play=0, partnership=0, opposition=0, court=0)
    assert score_candidate(candidate, 2, states, zero) == 0

    only_partners = ScoringWeights(balance=0, must_play=0, partnership=2, opposition=0, court=0)
    assert score_candidate(candidate, 2, states, only_partners) == 2 * partnership_score(candidate, states)
    assert states[1].match_count == 3
    assert states[1].partnerships == {}


def test_balance_prefers_players_at_minimum():
    states = fresh_states(8)
    for pid in (1, 2, 3, 4):
        states[pid].match_count = 3
    weights = ScoringWeights(must_play=0, partnership=0, opposition=0, court=0)
    behind = MatchCandidate(team1=(5, 6), team2=(7, 8), court=1)
    ahead = MatchCandidate(team1=(1, 2), team2=(3, 4), court=1)
    assert score_candidate(behind, 4, states, weights) > score_candidate(ahead, 4, states, weights)

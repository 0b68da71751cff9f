"""Tests for weekly pick admission, replacement and deletion."""

import pytest

from pickem import db
from pickem.auth import AuthContext
from pickem.errors import (
    BadRequest,
    Forbidden,
    GameNotFound,
    Locked,
    NotMember,
    QuotaExceeded,
    TeamAlreadyUsed,
)
from pickem.models import AdminAction, Pick
from pickem.services.pick_validator import (
    PickCandidate,
    delete_pick,
    submit_pick,
    validate_and_resolve,
)

from conftest import SEASON, hours_from_now


def _make_candidate(setup, team, game=None, week=1, profile=None):
    profile = profile or setup["player"]
    return PickCandidate(
        league_id=setup["league"].id,
        profile_id=profile.id,
        season=SEASON,
        week=week,
        team_id=team.id,
        game_id=game.id if game is not None else None,
    )


def _week_picks(setup, week=1, profile=None):
    profile = profile or setup["player"]
    return Pick.for_week(setup["league"].id, profile.id, SEASON, week)


def test_pick_resolves_game_from_team(league_setup):
    teams, games = league_setup["teams"], league_setup["games"]

    result = submit_pick(_make_candidate(league_setup, teams[1]))

    pick = db.session.get(Pick, result["pick_id"])
    assert pick.game_id == games[0].id
    assert pick.slot == 1


def test_third_pick_exceeds_quota(league_setup):
    teams = league_setup["teams"]
    submit_pick(_make_candidate(league_setup, teams[0]))
    submit_pick(_make_candidate(league_setup, teams[2]))

    with pytest.raises(QuotaExceeded):
        submit_pick(_make_candidate(league_setup, teams[4]))

    assert len(_week_picks(league_setup)) == 2


def test_same_game_resubmission_replaces_pick(league_setup):
    teams, games = league_setup["teams"], league_setup["games"]
    first = submit_pick(_make_candidate(league_setup, teams[0]))
    submit_pick(_make_candidate(league_setup, teams[2]))

    # Quota is full, but switching sides of an already picked game is allowed
    second = submit_pick(_make_candidate(league_setup, teams[1], game=games[0]))

    picks = _week_picks(league_setup)
    assert len(picks) == 2
    assert db.session.get(Pick, first["pick_id"]) is None
    replacement = db.session.get(Pick, second["pick_id"])
    assert replacement.team_id == teams[1].id
    assert replacement.slot == 1


def test_team_reuse_in_later_week_is_rejected(league_setup, factory):
    teams = league_setup["teams"]
    factory.game(teams[0], teams[3], week=2)
    submit_pick(_make_candidate(league_setup, teams[0]))

    with pytest.raises(TeamAlreadyUsed):
        submit_pick(_make_candidate(league_setup, teams[0], week=2))


def test_stale_quota_read_is_caught_by_slot_constraint(league_setup, monkeypatch):
    teams = league_setup["teams"]
    submit_pick(_make_candidate(league_setup, teams[0]))
    submit_pick(_make_candidate(league_setup, teams[2]))
    # A concurrent request that read the week before either pick committed
    monkeypatch.setattr(Pick, "for_week", staticmethod(lambda *args: []))

    with pytest.raises(QuotaExceeded):
        submit_pick(_make_candidate(league_setup, teams[4]))

    assert Pick.query.count() == 2


def test_stale_reuse_read_is_caught_by_team_constraint(league_setup, factory, monkeypatch):
    teams = league_setup["teams"]
    factory.game(teams[0], teams[3], week=2)
    submit_pick(_make_candidate(league_setup, teams[0]))
    monkeypatch.setattr(Pick, "find_team_pick", staticmethod(lambda *args, **kwargs: None))

    with pytest.raises(TeamAlreadyUsed):
        submit_pick(_make_candidate(league_setup, teams[0], week=2))

    assert Pick.query.filter_by(week=2).count() == 0


def test_team_reuse_is_per_league(league_setup, factory):
    teams = league_setup["teams"]
    other = factory.league(league_setup["owner"], name="Second League")
    factory.member(other, league_setup["player"])
    submit_pick(_make_candidate(league_setup, teams[0]))

    candidate = _make_candidate(league_setup, teams[0])
    candidate.league_id = other.id
    assert "pick_id" in submit_pick(candidate)


def test_pick_after_kickoff_is_locked(league_setup):
    teams = league_setup["teams"]

    with pytest.raises(Locked):
        submit_pick(_make_candidate(league_setup, teams[0]), now=hours_from_now(49))


def test_pick_on_started_game_is_locked(league_setup, factory):
    home, away = factory.team(), factory.team()
    factory.game(home, away, kickoff_in_hours=-1)

    with pytest.raises(Locked):
        submit_pick(_make_candidate(league_setup, home))


def test_non_member_is_rejected_before_game_lookup(league_setup, factory):
    outsider = factory.profile("outsider@example.com")
    idle_team = factory.team()

    with pytest.raises(NotMember):
        submit_pick(_make_candidate(league_setup, idle_team, profile=outsider))


def test_team_without_game_is_not_found(league_setup, factory):
    idle_team = factory.team()

    with pytest.raises(GameNotFound):
        submit_pick(_make_candidate(league_setup, idle_team))


def test_explicit_game_must_match_team(league_setup):
    teams, games = league_setup["teams"], league_setup["games"]

    with pytest.raises(BadRequest):
        submit_pick(_make_candidate(league_setup, teams[0], game=games[1]))


def test_non_positive_week_is_bad_request(league_setup):
    candidate = _make_candidate(league_setup, league_setup["teams"][0], week=0)

    with pytest.raises(BadRequest) as exc:
        validate_and_resolve(candidate)
    assert "week" in exc.value.details


def test_force_bypasses_lock(league_setup):
    teams = league_setup["teams"]
    owner = AuthContext(league_setup["owner"])

    result = submit_pick(
        _make_candidate(league_setup, teams[0]),
        force=True,
        actor=owner,
        now=hours_from_now(49),
    )

    assert db.session.get(Pick, result["pick_id"]) is not None
    action = AdminAction.query.filter_by(action_type="force_pick").one()
    assert action.target_profile_id == league_setup["player"].id
    assert action.pick_id == result["pick_id"]


def test_force_beyond_quota_uses_no_slot(league_setup):
    teams = league_setup["teams"]
    owner = AuthContext(league_setup["owner"])
    submit_pick(_make_candidate(league_setup, teams[0]))
    submit_pick(_make_candidate(league_setup, teams[2]))

    result = submit_pick(
        _make_candidate(league_setup, teams[4]), force=True, actor=owner
    )

    assert db.session.get(Pick, result["pick_id"]).slot is None
    assert len(_week_picks(league_setup)) == 3


def test_force_never_bypasses_team_reuse(league_setup, factory):
    teams = league_setup["teams"]
    factory.game(teams[0], teams[3], week=2)
    owner = AuthContext(league_setup["owner"])
    submit_pick(_make_candidate(league_setup, teams[0]))

    with pytest.raises(TeamAlreadyUsed):
        submit_pick(
            _make_candidate(league_setup, teams[0], week=2), force=True, actor=owner
        )


def test_force_requires_league_manager(league_setup):
    teams = league_setup["teams"]
    player = AuthContext(league_setup["player"])

    with pytest.raises(Forbidden):
        submit_pick(_make_candidate(league_setup, teams[0]), force=True, actor=player)
    assert _week_picks(league_setup) == []


def test_site_admin_may_force_without_membership(league_setup, factory):
    commissioner = factory.profile("commissioner@example.com")
    actor = AuthContext(commissioner, site_admin=True)

    result = submit_pick(
        _make_candidate(league_setup, league_setup["teams"][0]),
        force=True,
        actor=actor,
        now=hours_from_now(49),
    )
    assert "pick_id" in result


def test_delete_frees_slot(league_setup):
    teams = league_setup["teams"]
    first = submit_pick(_make_candidate(league_setup, teams[0]))
    submit_pick(_make_candidate(league_setup, teams[2]))

    assert delete_pick(first["pick_id"], league_setup["player"].id) == {"ok": True}

    result = submit_pick(_make_candidate(league_setup, teams[4]))
    assert db.session.get(Pick, result["pick_id"]).slot == 1


def test_delete_missing_pick_is_ok(league_setup):
    assert delete_pick(9999, league_setup["player"].id) == {"ok": True}


def test_delete_other_profiles_pick_is_ok_and_keeps_it(league_setup):
    teams = league_setup["teams"]
    result = submit_pick(_make_candidate(league_setup, teams[0]))

    assert delete_pick(result["pick_id"], league_setup["owner"].id) == {"ok": True}
    assert db.session.get(Pick, result["pick_id"]) is not None


def test_delete_after_kickoff_is_locked(league_setup):
    result = submit_pick(_make_candidate(league_setup, league_setup["teams"][0]))

    with pytest.raises(Locked):
        delete_pick(result["pick_id"], league_setup["player"].id, now=hours_from_now(49))


def test_forced_delete_after_kickoff_is_audited(league_setup):
    result = submit_pick(_make_candidate(league_setup, league_setup["teams"][0]))
    owner = AuthContext(league_setup["owner"])

    delete_pick(
        result["pick_id"],
        league_setup["player"].id,
        force=True,
        actor=owner,
        now=hours_from_now(49),
    )

    assert db.session.get(Pick, result["pick_id"]) is None
    action = AdminAction.query.filter_by(action_type="delete_pick").one()
    assert action.action_metadata["forced"] is True

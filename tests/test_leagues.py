"""Tests for league creation, joining and membership management."""

import pytest

from pickem.auth import AuthContext
from pickem.errors import Forbidden, NotFound
from pickem.models import AdminAction, LeagueMember, LeagueRole
from pickem.services import league_service

from conftest import SEASON


def test_create_league_makes_owner_member(factory):
    owner = factory.profile("owner@example.com", "Olivia")

    league = league_service.create_league("  Sunday Survivors ", SEASON, owner)

    assert league.name == "Sunday Survivors"
    assert len(league.invite_code) == 8
    assert LeagueMember.find(league.id, owner.id).role == LeagueRole.OWNER


def test_join_league_is_idempotent(league_setup, factory):
    newcomer = factory.profile("new@example.com")
    code = league_setup["league"].invite_code.lower()

    _, member, created = league_service.join_league(code, newcomer)
    _, again, created_again = league_service.join_league(code, newcomer)

    assert created and not created_again
    assert member.id == again.id
    assert member.role == LeagueRole.MEMBER


def test_join_with_unknown_code(league_setup):
    with pytest.raises(NotFound):
        league_service.join_league("NOPE1234", league_setup["player"])


def test_add_member_by_email_is_audited(league_setup, factory):
    newcomer = factory.profile("new@example.com")
    owner = AuthContext(league_setup["owner"])

    member = league_service.add_member(
        league_setup["league"].id, " NEW@example.com ", role="admin", actor=owner
    )

    assert member.profile_id == newcomer.id
    assert member.role == LeagueRole.ADMIN
    assert AdminAction.query.filter_by(action_type="add_member").count() == 1


def test_add_member_never_changes_owner(league_setup):
    league = league_setup["league"]

    member = league_service.add_member(league.id, "owner@example.com", role="member")

    assert member.role == LeagueRole.OWNER


def test_members_sorted_by_role_then_name(league_setup, factory):
    league = league_setup["league"]
    factory.member(league, factory.profile("zoe@example.com", "Zoe"), LeagueRole.ADMIN)
    factory.member(league, factory.profile("abe@example.com", "Abe"))

    names = [m.profile.label for m in league_service.list_members(league.id)]

    assert names == ["Olivia", "Zoe", "Abe", "Pat"]


def test_owner_role_is_fixed(league_setup):
    league, owner = league_setup["league"], league_setup["owner"]

    with pytest.raises(Forbidden):
        league_service.set_role(league.id, owner.id, LeagueRole.ADMIN)
    with pytest.raises(Forbidden):
        league_service.remove_member(league.id, owner.id)


def test_promote_and_remove_member(league_setup):
    league, player = league_setup["league"], league_setup["player"]
    owner = AuthContext(league_setup["owner"])

    promoted = league_service.set_role(league.id, player.id, LeagueRole.ADMIN, actor=owner)
    assert promoted.role == LeagueRole.ADMIN
    assert AuthContext(player).can_manage(league.id)

    league_service.remove_member(league.id, player.id, actor=owner)
    assert LeagueMember.find(league.id, player.id) is None
    types = {a.action_type for a in AdminAction.query.all()}
    assert types == {"set_role", "remove_member"}


def test_http_create_and_join(login, factory):
    owner = factory.profile("owner@example.com", "Olivia")
    client = login(owner)

    created = client.post("/api/leagues", json={"name": "Office Pool", "season": SEASON})
    league = created.get_json()["league"]
    joined = client.post("/api/leagues/join", json={"invite_code": league["invite_code"]})
    mine = client.get("/api/leagues").get_json()["leagues"]

    assert created.status_code == 201
    assert joined.get_json()["already"] is True
    assert joined.get_json()["role"] == LeagueRole.OWNER
    assert [(lg["id"], lg["role"]) for lg in mine] == [(league["id"], "owner")]


def test_http_create_rejects_bad_name(login, factory):
    client = login(factory.profile("owner@example.com"))

    response = client.post("/api/leagues", json={"name": "<script>", "season": SEASON})

    assert response.status_code == 400
    assert "name" in response.get_json()["details"]


def test_http_my_role(login, league_setup):
    client = login(league_setup["player"])

    data = client.get(f"/api/leagues/{league_setup['league'].id}/me").get_json()

    assert data["role"] == LeagueRole.MEMBER
    assert data["is_site_admin"] is False


def test_http_role_change_requires_owner(login, league_setup, factory):
    league = league_setup["league"]
    deputy = factory.profile("deputy@example.com", "Dee")
    factory.member(league, deputy, LeagueRole.ADMIN)
    client = login(deputy)

    response = client.patch(
        f"/api/leagues/{league.id}/members/{league_setup['player'].id}",
        json={"role": "admin"},
    )

    assert response.status_code == 403


def test_http_add_member_validates_email(login, league_setup):
    client = login(league_setup["owner"])

    response = client.post(
        f"/api/leagues/{league_setup['league'].id}/members",
        json={"email": "not-an-email"},
    )

    assert response.status_code == 400
    assert "email" in response.get_json()["details"]


def test_http_members_list(login, league_setup):
    client = login(league_setup["player"])

    response = client.get(f"/api/leagues/{league_setup['league'].id}/members")

    roles = [m["role"] for m in response.get_json()["members"]]
    assert roles == [LeagueRole.OWNER, LeagueRole.MEMBER]

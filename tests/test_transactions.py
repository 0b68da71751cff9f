"""Tests for mapping IntegrityErrors back to the constraint that fired."""

from sqlalchemy.exc import IntegrityError

from pickem.models import Pick, WrinklePick
from pickem.utils.transactions import violated_constraint


class _Diag:
    def __init__(self, constraint_name):
        self.constraint_name = constraint_name


class _DriverError(Exception):
    def __init__(self, message, constraint_name=None):
        super().__init__(message)
        self.diag = _Diag(constraint_name)


def _integrity_error(orig):
    return IntegrityError("INSERT INTO picks ...", {}, orig)


def test_constraint_name_from_postgres_diagnostics():
    error = _integrity_error(
        _DriverError("duplicate key value", constraint_name="uq_pick_team_season")
    )

    assert violated_constraint(error, Pick.__table__) == "uq_pick_team_season"


def test_constraint_matched_from_sqlite_columns():
    error = _integrity_error(
        Exception(
            "UNIQUE constraint failed: picks.league_id, picks.profile_id, "
            "picks.season, picks.week, picks.slot"
        )
    )

    assert violated_constraint(error, Pick.__table__) == "uq_pick_week_slot"


def test_wrinkle_slot_constraint_from_sqlite_columns():
    error = _integrity_error(
        Exception(
            "UNIQUE constraint failed: wrinkle_picks.wrinkle_id, "
            "wrinkle_picks.profile_id, wrinkle_picks.slot"
        )
    )

    assert violated_constraint(error, WrinklePick.__table__) == "uq_wrinkle_pick_slot"


def test_column_names_in_other_messages_do_not_match():
    error = _integrity_error(
        Exception("NOT NULL constraint failed: picks.team_id (slot missing)")
    )

    assert violated_constraint(error, Pick.__table__) is None

"""
Scoring rules for individual picks and league leaderboards.

A pick earns its team's score on a win, half of it on a tie and nothing on a
loss. Only FINAL games are decided; everything else scores ``None``.
Aggregation into weekly/season totals lives in
``pickem.services.score_calculator``.
"""

RESULT_WIN = "W"
RESULT_LOSS = "L"
RESULT_TIE = "T"
RESULT_PENDING = "—"


def _margin(team_id, game, spread=None):
    """Team score minus opponent score, optionally against a home spread.

    Returns None when the game lacks a score or the team is not playing.
    """
    if game is None or not game.involves(team_id):
        return None
    if game.home_score is None or game.away_score is None:
        return None

    home = game.home_score + (spread or 0)
    away = game.away_score
    if team_id == game.home_team_id:
        return home - away
    return away - home


def result_for(team_id, game, spread=None):
    """W, L, T, or the pending marker when the game is not decided"""
    if game is None or not game.is_final:
        return RESULT_PENDING

    margin = _margin(team_id, game, spread)
    if margin is None:
        return RESULT_PENDING
    if margin > 0:
        return RESULT_WIN
    if margin < 0:
        return RESULT_LOSS
    return RESULT_TIE


def points_for_pick(team_id, game, spread=None):
    """
    Points earned by picking ``team_id`` in ``game``.

    Returns:
        None while the game is not FINAL
        0 for a FINAL game with a missing score, or a loss
        the team's score for a win
        half the team's score for a tie (a push when ``spread`` is given)

    Args:
        team_id: Picked team
        game: Game with scores loaded
        spread: Home-team line for against-the-spread wrinkles
    """
    if game is None or not game.is_final:
        return None

    team_score = game.get_team_score(team_id)
    if team_score is None or _margin(team_id, game, spread) is None:
        return 0

    result = result_for(team_id, game, spread)
    if result == RESULT_WIN:
        return team_score
    if result == RESULT_TIE:
        return team_score / 2
    return 0


def is_correct(team_id, game, spread=None):
    """Outright wins only; ties are not correct"""
    return result_for(team_id, game, spread) == RESULT_WIN


def double_if_winless(points, prior_wins):
    """Winless-double wrinkle: double the points of a team with no wins yet"""
    if points is None:
        return None
    if prior_wins == 0:
        return points * 2
    return points


def win_pct(wins, losses):
    """Win percentage over decided games; a team with no games counts as 0"""
    played = wins + losses
    if played == 0:
        return 0.0
    return wins / played


def longest_win_streak(results):
    """Longest run of consecutive wins.

    ``results`` must already be ordered by week then kickoff and contain only
    decided picks, so weeks without a pick never break a run.
    """
    longest = current = 0
    for result in results:
        if result == RESULT_WIN:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def compute_leaderboards(rows):
    """
    Build the three league leaderboards.

    Args:
        rows: dicts with profile_id, display_name, decided, correct,
            points_total and longest_streak, one per profile with at least
            one decided pick

    Returns:
        dict with ``avg_points_per_pick``, ``accuracy`` and ``longest_streak``
        lists, each sorted best-first
    """
    avg_rows = []
    accuracy_rows = []
    streak_rows = []

    for row in rows:
        decided = row["decided"]
        avg = row["points_total"] / decided if decided else 0.0
        accuracy = row["correct"] / decided if decided else 0.0

        avg_rows.append(
            {
                "profile_id": row["profile_id"],
                "display_name": row["display_name"],
                "decided": decided,
                "points_total": row["points_total"],
                "avg_points_per_pick": round(avg, 2),
                "_sort": avg,
            }
        )
        accuracy_rows.append(
            {
                "profile_id": row["profile_id"],
                "display_name": row["display_name"],
                "correct": row["correct"],
                "decided": decided,
                "accuracy": round(accuracy, 3),
                "_sort": accuracy,
            }
        )
        streak_rows.append(
            {
                "profile_id": row["profile_id"],
                "display_name": row["display_name"],
                "longest_streak": row["longest_streak"],
            }
        )

    avg_rows.sort(key=lambda r: (-r["_sort"], -r["points_total"], r["display_name"]))
    accuracy_rows.sort(key=lambda r: (-r["_sort"], -r["correct"], r["display_name"]))
    streak_rows.sort(key=lambda r: (-r["longest_streak"], r["display_name"]))

    for entry in avg_rows + accuracy_rows:
        entry.pop("_sort")

    return {
        "avg_points_per_pick": avg_rows,
        "accuracy": accuracy_rows,
        "longest_streak": streak_rows,
    }

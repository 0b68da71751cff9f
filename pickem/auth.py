"""
Authorization context for API requests.

Identity comes from the Flask-Login session; league roles come from
``league_members``; site administrators are the configured
``SITE_ADMIN_EMAILS`` allowlist.
"""

import hmac

from flask import current_app, jsonify, request
from flask_login import current_user

from pickem import login_manager
from pickem.errors import Forbidden, NotMember, Unauthenticated
from pickem.models import LeagueMember, LeagueRole


@login_manager.unauthorized_handler
def unauthorized():
    error = Unauthenticated()
    return jsonify(error.to_dict()), error.status_code


def is_site_admin(profile):
    if profile is None or not getattr(profile, "email", None):
        return False
    return profile.email.strip().lower() in current_app.config.get(
        "SITE_ADMIN_EMAILS", frozenset()
    )


def cron_authorized():
    """True when the request carries the configured cron secret"""
    secret = current_app.config.get("CRON_SECRET")
    supplied = request.headers.get("X-Cron-Secret")
    if not secret or not supplied:
        return False
    return hmac.compare_digest(secret, supplied)


class AuthContext:
    """Who is acting and what they may do in a league"""

    def __init__(self, profile, site_admin=False):
        self.profile = profile
        self.site_admin = site_admin

    @classmethod
    def current(cls):
        if not current_user or not current_user.is_authenticated:
            raise Unauthenticated()
        profile = current_user._get_current_object()
        return cls(profile, site_admin=is_site_admin(profile))

    @property
    def profile_id(self):
        return self.profile.id if self.profile else None

    def membership(self, league_id):
        return LeagueMember.find(league_id, self.profile_id)

    def role_in(self, league_id):
        member = self.membership(league_id)
        return member.role if member else None

    def require_member(self, league_id):
        member = self.membership(league_id)
        if member is None and not self.site_admin:
            raise NotMember()
        return member

    def can_manage(self, league_id):
        if self.site_admin:
            return True
        return self.role_in(league_id) in LeagueRole.MANAGERS

    def require_manager(self, league_id):
        if not self.can_manage(league_id):
            raise Forbidden("league admin required")

    def require_owner(self, league_id):
        if self.site_admin:
            return
        if self.role_in(league_id) != LeagueRole.OWNER:
            raise Forbidden("league owner required")

    def require_site_admin(self):
        if not self.site_admin:
            raise Forbidden("site admin required")

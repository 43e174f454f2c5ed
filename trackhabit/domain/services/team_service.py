from typing import Dict, List, Optional
import secrets
import string

import structlog

from trackhabit.domain.errors import DataStoreError, NotFoundError, PermissionDeniedError
from trackhabit.domain.models.entities import (
    MemberRole, Membership, SessionContext, Team, TeamInvite
)
from trackhabit.infrastructure.persistence.base import (
    DataStore, DuplicateRowError, MEMBERSHIPS, TEAM_INVITES, TEAMS
)

logger = structlog.get_logger(__name__)

INVITE_CODE_LENGTH = 8
INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_ATTEMPTS = 3


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


class TeamService:
    """Teams, memberships and invite codes"""

    def __init__(self, store: DataStore):
        self.store = store

    async def create_team(self, session: SessionContext, name: str) -> Team:
        """
        Create a team and enroll its creator as owner.

        The two inserts run back-to-back. If the membership insert fails the
        team row is deleted again so no ownerless team is left behind.
        """

        rows = await self.store.insert(TEAMS, [{"name": name, "created_by": session.user_id}])
        team = Team.from_row(rows[0])

        try:
            await self.store.insert(MEMBERSHIPS, [{
                "team_id": team.id,
                "user_id": session.user_id,
                "role": MemberRole.OWNER.value,
            }])
        except DataStoreError as e:
            logger.error("Owner membership insert failed, removing team", team_id=team.id, error=str(e))
            await self.store.delete(TEAMS, match={"id": team.id, "created_by": session.user_id})
            raise

        logger.info("Team created", team_id=team.id, user_id=session.user_id)
        return team

    async def list_memberships(self, session: SessionContext) -> List[Membership]:
        """Memberships of the session user, each joined with its team"""

        rows = await self.store.select(MEMBERSHIPS, filters={"user_id": session.user_id}, order_by="created_at")
        if not rows:
            return []

        team_rows = await self.store.select(TEAMS, filters={"id": [row["team_id"] for row in rows]})
        teams: Dict[str, Team] = {row["id"]: Team.from_row(row) for row in team_rows}

        memberships = []
        for row in rows:
            membership = Membership.from_row(row)
            membership.team = teams.get(membership.team_id)
            memberships.append(membership)
        return memberships

    async def get_role(self, session: SessionContext, team_id: str) -> Optional[MemberRole]:
        rows = await self.store.select(
            MEMBERSHIPS, filters={"team_id": team_id, "user_id": session.user_id}, limit=1
        )
        return Membership.from_row(rows[0]).role if rows else None

    async def list_members(self, session: SessionContext, team_id: str) -> List[Membership]:
        if await self.get_role(session, team_id) is None:
            raise NotFoundError("Team not found")

        rows = await self.store.select(MEMBERSHIPS, filters={"team_id": team_id}, order_by="created_at")
        return [Membership.from_row(row) for row in rows]

    async def get_or_create_invite(self, session: SessionContext, team_id: str) -> TeamInvite:
        """Return the team's invite code, generating one when none exists"""

        role = await self.get_role(session, team_id)
        if role is None:
            raise NotFoundError("Team not found")
        if role not in (MemberRole.OWNER, MemberRole.ADMIN):
            raise PermissionDeniedError("Only owners and admins can invite members")

        existing = await self.store.select(TEAM_INVITES, filters={"team_id": team_id}, limit=1)
        if existing:
            return TeamInvite.from_row(existing[0])

        for attempt in range(INVITE_CODE_ATTEMPTS):
            try:
                rows = await self.store.insert(TEAM_INVITES, [{"team_id": team_id, "code": generate_invite_code()}])
                return TeamInvite.from_row(rows[0])
            except DuplicateRowError:
                logger.warning("Invite code collision", team_id=team_id, attempt=attempt + 1)

        raise DataStoreError("Could not generate a unique invite code")

    async def revoke_invite(self, session: SessionContext, team_id: str) -> None:
        role = await self.get_role(session, team_id)
        if role not in (MemberRole.OWNER, MemberRole.ADMIN):
            raise PermissionDeniedError("Only owners and admins can revoke invites")
        await self.store.delete(TEAM_INVITES, match={"team_id": team_id})

    async def join_by_code(self, session: SessionContext, code: str) -> Team:
        """Add the session user to the team behind an invite code"""

        invites = await self.store.select(TEAM_INVITES, filters={"code": code.strip().upper()}, limit=1)
        if not invites:
            raise NotFoundError("Invalid or expired invite link")

        invite = TeamInvite.from_row(invites[0])
        teams = await self.store.select(TEAMS, filters={"id": invite.team_id}, limit=1)
        if not teams:
            raise NotFoundError("Invalid or expired invite link")

        try:
            await self.store.insert(MEMBERSHIPS, [{
                "team_id": invite.team_id,
                "user_id": session.user_id,
                "role": MemberRole.MEMBER.value,
            }])
        except DuplicateRowError:
            # Already a member
            pass

        return Team.from_row(teams[0])

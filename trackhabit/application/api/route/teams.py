from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from trackhabit.application.api.dependencies import get_session_context, get_store
from trackhabit.application.api.schema import InviteResponse, JoinResponse, TeamCreateRequest
from trackhabit.domain.models.entities import Membership, SessionContext, Team
from trackhabit.domain.services.team_service import TeamService
from trackhabit.infrastructure.persistence.base import DataStore

router = APIRouter(prefix="/api/teams", tags=["teams"])

Session = Annotated[SessionContext, Depends(get_session_context)]
Store = Annotated[DataStore, Depends(get_store)]


@router.get("", response_model=List[Membership])
async def list_teams(session: Session, store: Store):
    """Memberships of the caller, with their teams"""
    return await TeamService(store).list_memberships(session)


@router.post("", response_model=Team, status_code=status.HTTP_201_CREATED)
async def create_team(request: TeamCreateRequest, session: Session, store: Store):
    return await TeamService(store).create_team(session, request.name)


@router.post("/join/{code}", response_model=JoinResponse)
async def join_team(code: str, session: Session, store: Store):
    team = await TeamService(store).join_by_code(session, code)
    return JoinResponse(team_id=team.id, team_name=team.name)


@router.get("/{team_id}/members", response_model=List[Membership])
async def list_members(team_id: str, session: Session, store: Store):
    return await TeamService(store).list_members(session, team_id)


@router.post("/{team_id}/invite", response_model=InviteResponse)
async def create_invite(team_id: str, session: Session, store: Store):
    invite = await TeamService(store).get_or_create_invite(session, team_id)
    return InviteResponse(team_id=invite.team_id, code=invite.code, join_path=f"/join/{invite.code}")


@router.delete("/{team_id}/invite", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invite(team_id: str, session: Session, store: Store):
    await TeamService(store).revoke_invite(session, team_id)

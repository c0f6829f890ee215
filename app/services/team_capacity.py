"""
Team capacity bookkeeping.

The leader is stored apart from `member_user_ids` but counts as a member.
If a malformed document also lists the leader among the members, the leader
is still counted once.
"""

from app.models.domain.registration_domain import MAX_TEAM_SIZE, Team, TeamCapacity


def effective_member_ids(leader_user_id: str | None, member_user_ids: list[str]) -> list[str]:
    """Distinct member ids in stored order, without the leader."""
    seen: set[str] = set()
    members: list[str] = []
    for user_id in member_user_ids:
        if not user_id or user_id == leader_user_id or user_id in seen:
            continue
        seen.add(user_id)
        members.append(user_id)
    return members


def compute_team_capacity(team: Team) -> TeamCapacity:
    members = effective_member_ids(team.leader_user_id, team.member_user_ids)
    size = (1 if team.leader_user_id else 0) + len(members)
    return TeamCapacity(
        effective_member_ids=members,
        size=size,
        is_complete=size == MAX_TEAM_SIZE,
        is_empty=size == 0,
        spots_available=max(0, MAX_TEAM_SIZE - size),
    )

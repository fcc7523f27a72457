"""
Member and team statistics computed over records already held in memory.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Iterable, Optional

from runclub.dates import is_this_month, parse_date, start_of_month, start_of_week
from runclub.models import ClubData, Member, Milestone, RunRecord

WEEKLY_GOAL_KM = 100.0
MONTHLY_GOAL_KM = 500.0
TOTAL_GOAL_KM = 2000.0
DEFAULT_MILESTONE_LADDER = (100, 250, 500, 750, 1000, 1500, 2000, 3000, 5000)

SORT_FIELDS = (
    "rank",
    "name",
    "total_distance",
    "record_count",
    "average_distance",
    "last_run_date",
)


@dataclass
class MemberStats:
    member_id: str
    name: str
    rank: int
    total_distance: float
    record_count: int
    average_distance: float
    weekly_distance: float
    monthly_distance: float
    average_pace: Optional[str] = None
    last_run_date: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class TeamStats:
    total_distance: float
    total_records: int
    average_distance: float
    active_members: int
    weekly_distance: float
    monthly_distance: float
    weekly_goal_progress: float
    monthly_goal_progress: float

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class GoalProgress:
    id: str
    title: str
    target: float
    current: float
    percentage: float
    is_achieved: bool
    remaining: float

    def as_dict(self) -> dict:
        return asdict(self)


def _record_day(record: RunRecord) -> Optional[date]:
    try:
        return parse_date(record.date)
    except ValueError:
        return None


def _distance_since(records: Iterable[RunRecord], since: date) -> float:
    total = 0.0
    for record in records:
        day = _record_day(record)
        if day is not None and day >= since:
            total += record.distance
    return total


def pace_seconds(pace: str) -> int:
    minutes, seconds = pace.split(":")
    return int(minutes) * 60 + int(seconds)


def average_pace(paces: Iterable[str]) -> Optional[str]:
    seconds = [pace_seconds(p) for p in paces if p]
    if not seconds:
        return None
    # Halves round up.
    average = int(sum(seconds) / len(seconds) + 0.5)
    return f"{average // 60}:{average % 60:02d}"


def progress_percentage(current: float, target: float) -> float:
    if target <= 0:
        return 100.0
    return min(current / target * 100, 100.0)


def member_stats(member: Member, records: Iterable[RunRecord], today: date) -> MemberStats:
    own = [r for r in records if r.member_id == member.id]
    total = sum(r.distance for r in own)
    count = len(own)
    dated = [r.date for r in own if _record_day(r) is not None]
    return MemberStats(
        member_id=member.id,
        name=member.name,
        rank=0,
        total_distance=total,
        record_count=count,
        average_distance=total / count if count else 0.0,
        weekly_distance=_distance_since(own, start_of_week(today)),
        monthly_distance=_distance_since(own, start_of_month(today)),
        average_pace=average_pace(r.pace for r in own if r.pace),
        last_run_date=max(dated) if dated else None,
    )


def rank_members(stats: list[MemberStats]) -> list[MemberStats]:
    """Assign ranks by total distance; ties keep their input order."""
    ordered = sorted(stats, key=lambda s: s.total_distance, reverse=True)
    for index, item in enumerate(ordered, start=1):
        item.rank = index
    return ordered


def sort_member_stats(
    stats: list[MemberStats], field: str = "rank", direction: str = "asc"
) -> list[MemberStats]:
    if field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field: {field}")
    reverse = direction == "desc"
    if field == "name":
        key = lambda s: s.name.casefold()
    elif field == "last_run_date":
        key = lambda s: s.last_run_date or ""
    else:
        key = lambda s: getattr(s, field)
    return sorted(stats, key=key, reverse=reverse)


def all_member_stats(members: list[Member], records: list[RunRecord], today: date) -> list[MemberStats]:
    return rank_members([member_stats(m, records, today) for m in members])


def team_stats(members: list[Member], records: list[RunRecord], today: date) -> TeamStats:
    total = sum(r.distance for r in records)
    member_ids = {m.id for m in members}
    weekly = _distance_since(records, start_of_week(today))
    monthly = _distance_since(records, start_of_month(today))
    return TeamStats(
        total_distance=total,
        total_records=len(records),
        average_distance=total / len(records) if records else 0.0,
        active_members=len({r.member_id for r in records if r.member_id in member_ids}),
        weekly_distance=weekly,
        monthly_distance=monthly,
        weekly_goal_progress=progress_percentage(weekly, WEEKLY_GOAL_KM),
        monthly_goal_progress=progress_percentage(monthly, MONTHLY_GOAL_KM),
    )


def goal_progress(goal_id: str, title: str, current: float, target: float) -> GoalProgress:
    return GoalProgress(
        id=goal_id,
        title=title,
        target=target,
        current=current,
        percentage=progress_percentage(current, target),
        is_achieved=current >= target,
        remaining=max(target - current, 0.0),
    )


def team_goals(stats: TeamStats) -> list[GoalProgress]:
    return [
        goal_progress("weekly", "Weekly goal", stats.weekly_distance, WEEKLY_GOAL_KM),
        goal_progress("monthly", "Monthly goal", stats.monthly_distance, MONTHLY_GOAL_KM),
        goal_progress("total", "Total goal", stats.total_distance, TOTAL_GOAL_KM),
    ]


def effective_milestones(milestones: Iterable[Milestone]) -> list[Milestone]:
    """Configured milestones, or the default ladder when none are configured."""
    milestones = list(milestones)
    if milestones:
        return milestones
    return [
        Milestone(id=f"default_{target}", target_km=float(target), reward=f"{target} km together!")
        for target in DEFAULT_MILESTONE_LADDER
    ]


def next_milestone(total: float, milestones: Iterable[Milestone]) -> Optional[dict]:
    targets = sorted(m.target_km for m in effective_milestones(milestones) if m.is_active)
    for target in targets:
        if target > total:
            return {
                "target": target,
                "remaining": target - total,
                "progress": progress_percentage(total, target),
            }
    return None


def crossed_milestones(
    before: float, after: float, milestones: Iterable[Milestone]
) -> list[Milestone]:
    """Active milestones whose target lies in (before, after]."""
    return sorted(
        (m for m in milestones if m.is_active and before < m.target_km <= after),
        key=lambda m: m.target_km,
    )


def team_total(members: Iterable[Member]) -> float:
    return sum(m.total_distance for m in members)


def summary(data: ClubData, today: date) -> dict:
    total = sum(r.distance for r in data.records)
    return {
        "total_members": len(data.members),
        "total_records": len(data.records),
        "this_month_records": sum(1 for r in data.records if is_this_month(r.date, today)),
        "total_distance": round(total, 2),
    }


def recent_records(
    records: list[RunRecord], members: list[Member], limit: int = 10
) -> list[dict]:
    names = {m.id: m.name for m in members}
    ordered = sorted(records, key=lambda r: (r.date, r.created_at), reverse=True)
    return [
        {**asdict(record), "member_name": names.get(record.member_id)}
        for record in ordered[:limit]
    ]

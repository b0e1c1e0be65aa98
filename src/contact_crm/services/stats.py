"""Statistics aggregator — per-employee call and pipeline counts.

Rows are computed on demand with a single grouped query and never stored.
The query only reads, so repeated calls without intervening writes return
identical results.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contact_crm.models.contact import Contact, ContactStatus
from contact_crm.models.user import Role, User
from contact_crm.schemas import EmployeeStatsRow

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def local_day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start and end of *now*'s calendar day, in *now*'s timezone, as UTC."""
    if now.tzinfo is None:
        now = now.astimezone()
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    end = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    return start.astimezone(UTC), end.astimezone(UTC)


def _count_where(condition) -> object:
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class StatsAggregator:
    """Compute one :class:`EmployeeStatsRow` per employee.

    Admins are left out of the roster. Employees without contacts get a
    row of zeros. Rows are ordered by user id, i.e. signup order.
    """

    def __init__(
        self, session: AsyncSession, *, clock: Callable[[], datetime] = _local_now
    ) -> None:
        self._session = session
        self._clock = clock

    async def compute(self) -> list[EmployeeStatsRow]:
        day_start, day_end = local_day_bounds(self._clock())

        called_today = and_(
            Contact.called.is_(True),
            Contact.called_at >= day_start,
            Contact.called_at < day_end,
        )
        stmt = (
            select(
                User.id,
                User.name,
                User.email,
                _count_where(called_today).label("called_today"),
                _count_where(Contact.status == ContactStatus.REJECTED).label("rejected"),
                _count_where(Contact.status == ContactStatus.LEAD).label("leads"),
                _count_where(Contact.status == ContactStatus.FUTURE).label("later"),
            )
            .select_from(User)
            .outerjoin(Contact, Contact.owner_id == User.id)
            .where(User.role == Role.EMPLOYEE)
            .group_by(User.id, User.name, User.email)
            .order_by(User.id)
        )
        result = await self._session.execute(stmt)

        rows = [
            EmployeeStatsRow(
                employee_id=row.id,
                name=row.name,
                email=row.email,
                called_today=int(row.called_today),
                rejected=int(row.rejected),
                leads=int(row.leads),
                later=int(row.later),
            )
            for row in result
        ]
        logger.debug("Computed stats for %d employees", len(rows))
        return rows

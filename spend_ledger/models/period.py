"""
Calendar month periods.

All month arithmetic happens in UTC so the start and end bound of a
period can never drift apart across a timezone change.
"""

import calendar
from datetime import date, datetime, time, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from spend_ledger.validation import validate_year_month


class MonthPeriod(BaseModel):
    """One calendar month, bounds inclusive on both ends."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)

    @classmethod
    def of(cls, year: int, month: int) -> "MonthPeriod":
        year, month = validate_year_month(year, month)
        return cls(year=year, month=month)

    @classmethod
    def current(cls, now: Optional[datetime] = None) -> "MonthPeriod":
        """The month containing `now` (UTC wall clock by default)."""
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return cls(year=now.year, month=now.month)

    @property
    def first_day(self) -> date:
        """Key under which budgets for this month are stored."""
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def start(self) -> datetime:
        return datetime.combine(self.first_day, time.min, tzinfo=timezone.utc)

    @property
    def end(self) -> datetime:
        """Last instant of the last day."""
        return datetime.combine(self.last_day, time.max, tzinfo=timezone.utc)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def contains(self, moment: datetime) -> bool:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return self.start <= moment <= self.end

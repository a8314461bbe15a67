"""
Calendar month value object.

Budget evaluation and buffer rollover work at month granularity only;
day-of-month never matters. YearMonth gives that granularity a type so
month arithmetic is not scattered across the engine.
"""

import calendar
from datetime import date
from functools import total_ordering

from pydantic import BaseModel, ConfigDict, Field


@total_ordering
class YearMonth(BaseModel):
    """An immutable (year, month) pair."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    @classmethod
    def from_date(cls, value: date) -> "YearMonth":
        """Month containing a date (or datetime)."""
        return cls(year=value.year, month=value.month)

    @property
    def ordinal(self) -> int:
        return self.year * 12 + (self.month - 1)

    def shift(self, months: int) -> "YearMonth":
        """Month `months` away (negative goes back)."""
        index = self.ordinal + months
        return YearMonth(year=index // 12, month=index % 12 + 1)

    def next(self) -> "YearMonth":
        return self.shift(1)

    def previous(self) -> "YearMonth":
        return self.shift(-1)

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def last_day(self) -> date:
        return date(self.year, self.month, self.day_count)

    @property
    def day_count(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    def __lt__(self, other: "YearMonth") -> bool:
        if not isinstance(other, YearMonth):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

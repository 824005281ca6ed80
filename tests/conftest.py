"""Shared fixtures for fieldlens tests."""

from datetime import date, datetime

import pytest

from fieldlens import Field, Record, computed
from fieldlens.registry import _REGISTRIES

EPOCH = datetime(1970, 1, 1)


def years_between(start: date, end: date) -> int:
    """Whole years elapsed from ``start`` to ``end``."""
    return end.year - start.year - ((end.month, end.day) < (start.month, start.day))


class Person(Record):
    name: str
    birthday: datetime

    @computed
    def age(self) -> int:
        """Age in whole years."""
        return years_between(self.birthday.date(), date.today())


class Point(Record, frozen=True):
    x: int
    y: int

    @computed
    def norm(self) -> float:
        return (self.x**2 + self.y**2) ** 0.5


@pytest.fixture
def person_cls():
    return Person


@pytest.fixture
def mary():
    """The reference record: Mary, born at the epoch."""
    return Person(name="Mary", birthday=EPOCH)


@pytest.fixture
def point():
    return Point(x=3, y=4)


@pytest.fixture
def account_cls():
    """Record with nullable, read-only, defaulted and generic fields."""

    class Account(Record):
        id: int = Field(readonly=True)
        owner: str
        balance: float = 0.0
        active: bool = True
        opened: date = Field(default=date(2024, 1, 1))
        note: str | None = None
        tags: list[str] = Field(default_factory=list)

    return Account


@pytest.fixture
def epoch():
    return EPOCH


@pytest.fixture
def mary_age():
    """Mary's expected age today."""
    return years_between(EPOCH.date(), date.today())


@pytest.fixture
def point_cls():
    return Point


@pytest.fixture
def clean_registries():
    """Drop lens registrations made by a test."""
    before = dict(_REGISTRIES)
    yield
    _REGISTRIES.clear()
    _REGISTRIES.update(before)

from datetime import date

import pytest

from analysis.errors import InsufficientDataError
from analysis.filters import filter_observations, last_entry_date, workdays_only


def test_workdays_only(observations):
    workdays = workdays_only(observations)

    assert sorted(workdays['weekday'].unique()) == [1, 2, 3, 4, 5]
    assert len(workdays) == len(observations) * 5 // 7


def test_filter_by_location_and_direction(observations):
    vbz_east = filter_observations(observations, locations='VBZ', directions='Ost')

    assert not vbz_east.empty
    assert set(vbz_east['location']) == {'VBZ'}
    assert set(vbz_east['direction']) == {'Ost'}


def test_filter_by_years(observations):
    subset = filter_observations(observations, years=[2020, 2024])
    assert sorted(subset['year'].unique()) == [2020, 2024]


def test_filter_without_criteria_returns_copy(observations):
    subset = filter_observations(observations)

    assert len(subset) == len(observations)
    assert subset is not observations


def test_filter_does_not_mutate_input(observations):
    before = len(observations)
    filter_observations(observations, weekdays=[6, 7])
    assert len(observations) == before


def test_last_entry_date(observations):
    # 2024-01-01 は月曜なので最終日は日曜の 2024-01-07
    assert last_entry_date(observations) == date(2024, 1, 7)
    assert last_entry_date(workdays_only(observations)) == date(2024, 1, 5)


def test_last_entry_date_empty(observations):
    with pytest.raises(InsufficientDataError):
        last_entry_date(observations.iloc[0:0])

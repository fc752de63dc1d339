from datetime import date

import pytest

from analysis.filters import workdays_only
from analysis.report import FrequencyReport


@pytest.fixture
def report(observations):
    return FrequencyReport(workdays_only(observations), start_year=2020, compare_years=(2023, 2024))


def test_subset(report):
    vbz_east = report.subset('Frequenzen VBZ Ost')
    assert set(zip(vbz_east['direction'], vbz_east['location'])) == {('Ost', 'VBZ')}

    with pytest.raises(KeyError):
        report.subset('Unbekannt')


def test_summarize(report):
    summary = report.summarize('Frequenzen VBZ Ost')

    assert summary['strongest_weekdays'] == [3, 4, 5]
    # 2020: mean(d + 1) = 4, 2023: mean(4d + 1) = 13 -> 9 / 17
    assert summary['increases'][2023] == 52.9
    assert summary['increases'][2024] > summary['increases'][2023]
    assert 1 in summary['declining_weekdays']
    assert 5 not in summary['declining_weekdays']
    assert summary['last_entry_date'] == date(2024, 1, 5)
    assert set(summary['profile']['year']) == {2020, 2023, 2024}


def test_summarize_missing_compare_year(observations):
    report = FrequencyReport(workdays_only(observations), start_year=2020, compare_years=(2022, 2023))
    summary = report.summarize('Frequenzen alle Daten')

    assert summary['increases'][2022] is None
    assert summary['increases'][2023] is not None


def test_summarize_empty_subset(observations):
    west_only = observations[observations['direction'] == 'West']
    summary = FrequencyReport(west_only).summarize('Frequenzen VBZ Ost')

    assert summary['error'] == 'No data available'


def test_generate_summary_report(report):
    text = report.generate_summary_report()

    for name in FrequencyReport.SUBSETS:
        assert name in text
    assert 'Frequenzstärkste Wochentage: Mi, Do, Fr' in text
    assert 'Anstieg 2023 gegenüber 2020: +52.9 %' in text
    assert 'Anstieg 2024 gegenüber 2020 (Daten nur bis 2024-01-05): +' in text
    assert 'Relativer Rückgang: Mo + Di' in text

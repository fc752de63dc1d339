import pandas as pd
import pytest

from analysis.loader import normalize_frequencies

LABELS = ['Ost-VBZ', 'West-VBZ Total', 'Ost-SBB', 'West-Nord']


def first_monday(year: int) -> pd.Timestamp:
    start = pd.Timestamp(f'{year}-01-01')
    return start + pd.Timedelta(days=(7 - start.dayofweek) % 7)


def build_raw(years=(2020, 2023, 2024), intervals: int = 12) -> pd.DataFrame:
    """
    1週間分（月〜日）の生データ
    In は年と曜日に比例して増える: (year - 2019) * weekday + label_index
    """
    rows = []
    for year in years:
        start = first_monday(year)
        for day in range(7):
            for step in range(intervals):
                ts = start + pd.Timedelta(days=day, minutes=5 * step)
                for i, label in enumerate(LABELS):
                    rows.append({
                        'Timestamp': ts.strftime('%Y-%m-%d %H:%M:%S'),
                        'Name': label,
                        'In': (year - 2019) * (day + 1) + i,
                        'Out': 1,
                    })
    return pd.DataFrame(rows)


@pytest.fixture
def raw_frame():
    return build_raw()


@pytest.fixture
def observations():
    return normalize_frequencies(build_raw())


@pytest.fixture
def source_folder(tmp_path):
    folder = tmp_path / 'data'
    folder.mkdir()
    for year in (2020, 2023, 2024):
        build_raw(years=(year,)).to_csv(folder / f'frequenzen_hardbruecke_{year}.csv', index=False)
    return folder


@pytest.fixture
def make_observations():
    """(weekday, year, location, direction, count_total) のタプルから観測テーブルを作る"""
    def _make(rows):
        frame = pd.DataFrame(rows, columns=['weekday', 'year', 'location', 'direction', 'count_total'])
        frame['timestamp'] = pd.to_datetime(frame['year'].astype(str) + '-06-01')
        frame['count_in'] = frame['count_total']
        frame['count_out'] = 0
        frame['is_post_reference_date'] = frame['timestamp'] >= pd.Timestamp('2022-04-01')
        return frame
    return _make

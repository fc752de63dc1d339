"""
曜日別・年別の通行量集計
どの関数も入力を変更しない純粋関数
"""
from typing import List
import logging

import pandas as pd

from analysis.errors import DivisionByZeroError, InsufficientDataError
from config import INTERVALS_PER_DAY
from database.models import DailyWeekdayAggregate

logger = logging.getLogger(__name__)

STRATUM_COLUMNS = ['weekday', 'year', 'location', 'direction']


def weekday_profile(observations: pd.DataFrame,
                    intervals_per_day: int = INTERVALS_PER_DAY) -> pd.DataFrame:
    """
    曜日×年ごとの推定日次合計と、同年内の割合を計算

    1. 曜日・年・地点・方向ごとに5分間隔の平均を取り、288倍して日次値を推定
       （欠損した間隔があっても下方に偏らない）
    2. 曜日・年ごとに地点と方向を合算
    3. 年ごとに各曜日の割合(%)を計算

    観測のない(曜日, 年)は結果に含まれない（0で埋めない）。

    Args:
        observations: 観測テーブル（絞り込み済みでもよい）
        intervals_per_day: 1日あたりの間隔数

    Returns:
        weekday, year, estimated_daily_total, share_of_year_percent の
        DataFrame（year, weekday 順）

    Raises:
        InsufficientDataError: 観測が空の場合
    """
    if observations.empty:
        raise InsufficientDataError("Cannot build a weekday profile from an empty observation set")

    strata = (
        observations.groupby(STRATUM_COLUMNS)['count_total'].mean()
        * intervals_per_day
    )

    profile = (
        strata.groupby(level=['weekday', 'year']).sum()
        .rename('estimated_daily_total')
        .reset_index()
    )

    year_totals = profile.groupby('year')['estimated_daily_total'].transform('sum')
    profile['share_of_year_percent'] = profile['estimated_daily_total'] / year_totals * 100

    profile = profile.sort_values(['year', 'weekday']).reset_index(drop=True)
    logger.debug(f"Weekday profile with {len(profile)} rows from {len(strata)} strata")
    return profile


def profile_records(profile: pd.DataFrame) -> List[DailyWeekdayAggregate]:
    """weekday_profile の結果をレコードのリストに変換"""
    return [
        DailyWeekdayAggregate(
            weekday=int(row.weekday),
            year=int(row.year),
            estimated_daily_total=float(row.estimated_daily_total),
            share_of_year_percent=float(row.share_of_year_percent),
        )
        for row in profile.itertuples(index=False)
    ]


def _year_mean(observations: pd.DataFrame, year: int) -> float:
    values = observations.loc[observations['year'] == year, 'count_total']
    if values.empty:
        raise InsufficientDataError(f"No observations for year {year}")
    return float(values.mean())


def percent_increase(observations: pd.DataFrame, year_a: int, year_b: int) -> float:
    """
    2つの年の平均観測値の対称的な変化率(%)

    (mean_b - mean_a) / (mean_a + mean_b) * 100 を小数第1位で丸める。
    分母は両年の和なので結果は (-100, 100) に収まる。

    Args:
        observations: 観測テーブル
        year_a: 基準年
        year_b: 比較年

    Returns:
        変化率(%)

    Raises:
        InsufficientDataError: どちらかの年に観測がない場合
        DivisionByZeroError: 両年の平均がともに0の場合
    """
    mean_a = _year_mean(observations, year_a)
    mean_b = _year_mean(observations, year_b)

    denominator = mean_a + mean_b
    if denominator == 0:
        raise DivisionByZeroError(f"Mean count is zero in both {year_a} and {year_b}")

    increase = round((mean_b - mean_a) / denominator * 100, 1)
    logger.info(f"Increase {year_a} -> {year_b}: {increase:+.1f} %")
    return increase


def strongest_weekdays(profile: pd.DataFrame, n: int = 3) -> List[int]:
    """
    年平均の割合が大きい上位n曜日（曜日順）

    Args:
        profile: weekday_profile の結果
        n: 返す曜日の数

    Returns:
        曜日のリスト
    """
    mean_share = profile.groupby('weekday')['share_of_year_percent'].mean()
    return sorted(int(day) for day in mean_share.nlargest(n).index)


def declining_weekdays(profile: pd.DataFrame, year_a: int, year_b: int) -> List[int]:
    """
    year_a から year_b にかけて割合が下がった曜日

    Raises:
        InsufficientDataError: どちらかの年がprofileに含まれない場合
    """
    shares = profile.pivot(index='weekday', columns='year', values='share_of_year_percent')
    for year in (year_a, year_b):
        if year not in shares.columns:
            raise InsufficientDataError(f"No weekday profile for year {year}")
    if year_a == year_b:
        return []

    both = shares[[year_a, year_b]].dropna()
    declined = both[both[year_b] < both[year_a]]
    return [int(day) for day in declined.index]

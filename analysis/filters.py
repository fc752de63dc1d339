"""
観測テーブルの絞り込み
"""
from datetime import date
from typing import Iterable, Optional, Union

import pandas as pd

from analysis.errors import InsufficientDataError
from config import WORKDAYS


def _as_list(values) -> list:
    if isinstance(values, (str, int)):
        return [values]
    return list(values)


def filter_observations(observations: pd.DataFrame,
                        weekdays: Optional[Iterable[int]] = None,
                        locations: Optional[Union[str, Iterable[str]]] = None,
                        directions: Optional[Union[str, Iterable[str]]] = None,
                        years: Optional[Iterable[int]] = None) -> pd.DataFrame:
    """
    条件に一致する観測だけを返す（入力は変更しない）

    Args:
        observations: 観測テーブル
        weekdays: 曜日（1=月曜）
        locations: 計測地点
        directions: 方向
        years: 年

    Returns:
        絞り込んだDataFrameのコピー
    """
    mask = pd.Series(True, index=observations.index)

    if weekdays is not None:
        mask &= observations['weekday'].isin(_as_list(weekdays))
    if locations is not None:
        mask &= observations['location'].isin(_as_list(locations))
    if directions is not None:
        mask &= observations['direction'].isin(_as_list(directions))
    if years is not None:
        mask &= observations['year'].isin(_as_list(years))

    return observations.loc[mask].copy()


def workdays_only(observations: pd.DataFrame,
                  workdays: Iterable[int] = WORKDAYS) -> pd.DataFrame:
    """平日（月〜金）のみ"""
    return filter_observations(observations, weekdays=workdays)


def last_entry_date(observations: pd.DataFrame) -> date:
    """最後の観測の日付"""
    if observations.empty:
        raise InsufficientDataError("No observations to take the last entry date from")
    return observations['timestamp'].max().date()

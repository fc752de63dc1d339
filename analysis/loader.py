"""
年別の通行量CSVを読み込み、観測テーブルへ正規化する
キャッシュ（FrequencyDatabase）が有効な場合はそちらから復元する
"""
import hashlib
import json
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
import logging

import pandas as pd
from pandas.api.types import is_datetime64_any_dtype

from analysis.errors import SchemaError
from database.models import Observation
from config import (
    DATA_FOLDER,
    FILE_TEMPLATE,
    LABEL_DELIMITER,
    REFERENCE_DATE,
    SOURCE_COLUMNS,
    SOURCE_TIMEZONE,
    TOTAL_MARKER,
    WEEK_START,
    YEARS,
)

logger = logging.getLogger(__name__)

OBSERVATION_COLUMNS = [
    'timestamp',
    'direction',
    'location',
    'count_in',
    'count_out',
    'count_total',
    'is_post_reference_date',
    'weekday',
    'year',
]


def _marker_pattern(marker: str) -> re.Pattern:
    return re.compile(rf"\s+{re.escape(marker)}\s*$", re.IGNORECASE)


def split_label(label: str,
                delimiter: str = LABEL_DELIMITER,
                marker: str = TOTAL_MARKER) -> Tuple[str, str]:
    """
    結合ラベルを方向と計測地点に分割

    末尾の集計マーカー（例: " Total"）は大文字小文字を区別せずに除去する。
    "Ost-VBZ Total" -> ("Ost", "VBZ")

    Args:
        label: "<direction>-<location>[ total]" 形式のラベル
        delimiter: 区切り文字
        marker: 除去する末尾マーカー

    Returns:
        (direction, location)

    Raises:
        SchemaError: ちょうど2つに分割できない場合
    """
    cleaned = _marker_pattern(marker).sub('', str(label)).strip()
    parts = cleaned.split(delimiter)
    if len(parts) != 2:
        raise SchemaError(
            f"Label {label!r} does not split into direction and location on {delimiter!r}"
        )

    direction, location = (part.strip() for part in parts)
    if not direction or not location:
        raise SchemaError(f"Label {label!r} has an empty direction or location")
    return direction, location


def _ensure_columns(raw: pd.DataFrame, columns: Iterable[str] = SOURCE_COLUMNS) -> None:
    missing = [c for c in columns if c not in raw.columns]
    if missing:
        raise SchemaError(f"Source table missing columns: {missing}")


def _parse_timestamps(values: pd.Series, timezone: str = SOURCE_TIMEZONE) -> pd.Series:
    """UTCオフセット付きの時刻は現地時刻（タイムゾーンなし）に変換"""
    try:
        timestamps = pd.to_datetime(values)
    except ValueError:
        timestamps = None

    # 夏時間でオフセットが混在する列はUTCとして読み直す
    if timestamps is None or not is_datetime64_any_dtype(timestamps):
        try:
            timestamps = pd.to_datetime(values, utc=True)
        except ValueError as e:
            raise SchemaError(f"Unparseable timestamps: {e}") from e

    if timestamps.dt.tz is not None:
        timestamps = timestamps.dt.tz_convert(timezone).dt.tz_localize(None)
    return timestamps.astype('datetime64[ns]')


def _parse_counts(values: pd.Series, column: str) -> pd.Series:
    try:
        counts = pd.to_numeric(values)
    except (ValueError, TypeError) as e:
        raise SchemaError(f"Column {column!r} contains non-numeric counts") from e

    if counts.isna().any():
        raise SchemaError(f"Column {column!r} contains missing counts")
    if (counts < 0).any():
        raise SchemaError(f"Column {column!r} contains negative counts")
    if (counts % 1 != 0).any():
        raise SchemaError(f"Column {column!r} contains fractional counts")
    return counts.astype('int64')


def _weekday(timestamps: pd.Series, week_start: int) -> pd.Series:
    if week_start not in range(1, 8):
        raise ValueError(f"week_start must be between 1 and 7, got {week_start}")
    # dayofweek: 月曜=0
    return ((timestamps.dt.dayofweek + 1 - week_start) % 7 + 1).astype('int64')


def empty_observations() -> pd.DataFrame:
    """列と型だけを持つ空の観測テーブル"""
    return pd.DataFrame({
        'timestamp': pd.Series(dtype='datetime64[ns]'),
        'direction': pd.Series(dtype='object'),
        'location': pd.Series(dtype='object'),
        'count_in': pd.Series(dtype='int64'),
        'count_out': pd.Series(dtype='int64'),
        'count_total': pd.Series(dtype='int64'),
        'is_post_reference_date': pd.Series(dtype='bool'),
        'weekday': pd.Series(dtype='int64'),
        'year': pd.Series(dtype='int64'),
    })


def normalize_frequencies(raw: pd.DataFrame,
                          reference_date: str = REFERENCE_DATE,
                          week_start: int = WEEK_START,
                          delimiter: str = LABEL_DELIMITER,
                          marker: str = TOTAL_MARKER) -> pd.DataFrame:
    """
    生データ（Timestamp, Name, In, Out）を観測テーブルに変換

    入力は変更せず、新しいDataFrameを返す。

    Args:
        raw: 全年を結合した生データ
        reference_date: 基準日（この日以降を is_post_reference_date とする）
        week_start: 週の開始曜日（1=月曜）
        delimiter: ラベルの区切り文字
        marker: ラベル末尾の集計マーカー

    Returns:
        OBSERVATION_COLUMNS を持つDataFrame

    Raises:
        SchemaError: 列不足、分割できないラベル、不正なカウント
    """
    _ensure_columns(raw)
    if raw.empty:
        logger.warning("Source table is empty")
        return empty_observations()

    names = raw['Name'].astype(str)

    # ラベルの種類は少ないのでユニーク値ごとに分割する
    splits: Dict[str, Tuple[str, str]] = {}
    invalid: List[str] = []
    for label in names.unique():
        try:
            splits[label] = split_label(label, delimiter, marker)
        except SchemaError:
            invalid.append(label)

    if invalid:
        logger.error(f"{len(invalid)} label(s) cannot be split: {invalid[:5]}")
        raise SchemaError(
            f"Cannot split {len(invalid)} label(s) into direction and location: {invalid[:5]}"
        )

    directions = {label: parts[0] for label, parts in splits.items()}
    locations = {label: parts[1] for label, parts in splits.items()}

    timestamps = _parse_timestamps(raw['Timestamp'])
    count_in = _parse_counts(raw['In'], 'In')
    count_out = _parse_counts(raw['Out'], 'Out')

    observations = pd.DataFrame({
        'timestamp': timestamps,
        'direction': names.map(directions),
        'location': names.map(locations),
        'count_in': count_in,
        'count_out': count_out,
        'count_total': count_in + count_out,
        'is_post_reference_date': timestamps >= pd.Timestamp(reference_date),
        'weekday': _weekday(timestamps, week_start),
        'year': timestamps.dt.year.astype('int64'),
    })

    logger.info(f"Normalized {len(observations)} observations")
    return observations.reset_index(drop=True)


def observation_records(observations: pd.DataFrame) -> List[Observation]:
    """観測テーブルをレコードのリストに変換"""
    return [
        Observation(
            timestamp=row.timestamp.to_pydatetime(),
            direction=row.direction,
            location=row.location,
            count_in=int(row.count_in),
            count_out=int(row.count_out),
            count_total=int(row.count_total),
            is_post_reference_date=bool(row.is_post_reference_date),
            weekday=int(row.weekday),
            year=int(row.year),
        )
        for row in observations[OBSERVATION_COLUMNS].itertuples(index=False)
    ]


def year_path(year: int, data_folder: Path = DATA_FOLDER) -> Path:
    return Path(data_folder) / FILE_TEMPLATE.format(year=year)


def read_year(year: int, data_folder: Path = DATA_FOLDER) -> pd.DataFrame:
    """
    1年分のソースCSVを読み込む

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        SchemaError: 必須列が不足している場合
    """
    path = year_path(year, data_folder)
    if not path.exists():
        logger.error(f"Source file not found: {path}")
        raise FileNotFoundError(f"Source file not found: {path}")

    raw = pd.read_csv(path)
    _ensure_columns(raw)
    logger.info(f"Read {len(raw)} rows from {path.name}")
    return raw


def source_fingerprint(paths: Iterable[Path],
                       reference_date: str = REFERENCE_DATE,
                       week_start: int = WEEK_START) -> str:
    """ソースファイル（名前・サイズ・更新時刻）と正規化設定からハッシュを作る"""
    entries = []
    for path in sorted(Path(p) for p in paths):
        stat = path.stat()
        entries.append([path.name, stat.st_size, stat.st_mtime_ns])

    payload = json.dumps({
        'sources': entries,
        'reference_date': str(reference_date),
        'week_start': week_start,
    }, sort_keys=True)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


class FrequencyLoader:
    """
    年別CSVを読み込み、正規化済みの観測テーブルを返すクラス
    キャッシュが渡された場合は有効なスナップショットを優先する
    """

    def __init__(self,
                 data_folder: Path = DATA_FOLDER,
                 years: Optional[List[int]] = None,
                 cache=None,
                 reference_date: str = REFERENCE_DATE,
                 week_start: int = WEEK_START):
        """
        Args:
            data_folder: ソースCSVのフォルダ
            years: 読み込む年（Noneの場合は config.YEARS）
            cache: FrequencyDatabaseインスタンス（省略可）
            reference_date: 基準日
            week_start: 週の開始曜日
        """
        self.data_folder = Path(data_folder)
        self.years = list(years) if years is not None else list(YEARS)
        self.cache = cache
        self.reference_date = reference_date
        self.week_start = week_start

    def source_paths(self) -> List[Path]:
        return [year_path(year, self.data_folder) for year in self.years]

    def load(self, refresh: bool = False) -> pd.DataFrame:
        """
        観測テーブルを読み込む

        Args:
            refresh: Trueの場合はキャッシュを無視して再計算する

        Returns:
            観測テーブル
        """
        paths = self.source_paths()
        existing = [p for p in paths if p.exists()]

        if not existing and self.cache is not None and self.cache.has_snapshot():
            return self._load_snapshot_without_sources()

        missing = [p for p in paths if not p.exists()]
        if missing:
            logger.error(f"Missing source files: {[p.name for p in missing]}")
            raise FileNotFoundError(f"Source file not found: {missing[0]}")

        fingerprint = source_fingerprint(paths, self.reference_date, self.week_start)
        if self.cache is not None and not refresh and self.cache.is_valid(fingerprint):
            logger.info("Cache hit, loading observations from snapshot")
            return self.cache.load_observations()

        raw = pd.concat([read_year(year, self.data_folder) for year in self.years],
                        ignore_index=True)
        observations = normalize_frequencies(raw, self.reference_date, self.week_start)

        if self.cache is not None:
            self.cache.save_observations(observations, fingerprint, self.settings())

        return observations

    def settings(self) -> Dict:
        """スナップショットに記録する正規化設定"""
        return {
            'years': sorted(self.years),
            'reference_date': str(self.reference_date),
            'week_start': self.week_start,
        }

    def _load_snapshot_without_sources(self) -> pd.DataFrame:
        """
        ソースCSVがない場合にスナップショットから読み込む
        正規化設定が一致する場合のみ使い、要求された年に絞り込む

        Raises:
            FileNotFoundError: 設定が異なる、または要求された年が含まれない場合
        """
        stored = self.cache.get_settings()
        expected = self.settings()
        if stored is None or any(stored.get(key) != expected[key]
                                 for key in ('reference_date', 'week_start')):
            logger.error(f"Snapshot settings {stored} do not match {expected}")
            raise FileNotFoundError(
                f"No source files in {self.data_folder} and the snapshot was built with other settings"
            )

        missing_years = sorted(set(self.years) - set(stored.get('years', [])))
        if missing_years:
            logger.error(f"Snapshot lacks years {missing_years}")
            raise FileNotFoundError(
                f"No source files in {self.data_folder} and the snapshot lacks years {missing_years}"
            )

        logger.warning("No source files found, using cached snapshot")
        observations = self.cache.load_observations()
        return observations[observations['year'].isin(self.years)].reset_index(drop=True)

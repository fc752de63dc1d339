"""
データモデル定義
"""
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Observation:
    """5分間隔の通行量観測（センサー1件分）"""
    timestamp: datetime       # 観測時刻（5分単位）
    direction: str            # 方向 (Ost, West)
    location: str             # 計測地点 (Süd, Nord, SBB, VBZ)
    count_in: int             # 入場者数
    count_out: int            # 退場者数
    count_total: int          # count_in + count_out
    is_post_reference_date: bool  # 基準日以降か
    weekday: int              # 曜日 (1=月曜)
    year: int                 # 年


@dataclass(frozen=True)
class DailyWeekdayAggregate:
    """曜日×年ごとの推定日次合計"""
    weekday: int
    year: int
    estimated_daily_total: float      # 5分平均 × 288 の推定値
    share_of_year_percent: float      # 同年内の全曜日合計に対する割合(%)

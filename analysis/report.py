"""
集計結果のサマリーレポート
ダッシュボードのバリューボックスに相当する値をテキストで出力する
"""
from typing import Dict, List, Optional, Tuple
import logging

import pandas as pd

from analysis.aggregator import (
    declining_weekdays,
    percent_increase,
    strongest_weekdays,
    weekday_profile,
)
from analysis.errors import InsufficientDataError
from analysis.filters import filter_observations, last_entry_date
from config import WEEKDAY_ABBREVIATIONS

logger = logging.getLogger(__name__)


class FrequencyReport:
    """
    観測テーブルの部分集合ごとに集計し、サマリーを生成するクラス
    """

    # 地点・方向の絞り込み条件
    SUBSETS = {
        'Frequenzen VBZ Ost': {'locations': 'VBZ', 'directions': 'Ost'},
        'Frequenzen alle Messorte Ost': {'directions': 'Ost'},
        'Frequenzen alle Daten': {},
    }

    def __init__(self,
                 observations: pd.DataFrame,
                 start_year: int = 2020,
                 compare_years: Tuple[int, ...] = (2023, 2024)):
        """
        Args:
            observations: 観測テーブル（通常は平日のみ）
            start_year: 比較の基準年
            compare_years: 基準年と比較する年
        """
        self.observations = observations
        self.start_year = start_year
        self.compare_years = tuple(compare_years)
        logger.info("Report initialized")

    def subset(self, name: str) -> pd.DataFrame:
        if name not in self.SUBSETS:
            raise KeyError(f"Unknown subset: {name}")
        return filter_observations(self.observations, **self.SUBSETS[name])

    def summarize(self, name: str) -> Dict:
        """
        1つの部分集合の集計

        Args:
            name: SUBSETS のキー

        Returns:
            集計結果の辞書（データがない場合は 'error' を含む）
        """
        data = self.subset(name)
        if data.empty:
            logger.warning(f"No data for subset {name}")
            return {'name': name, 'error': 'No data available'}

        profile = weekday_profile(data)

        increases: Dict[int, Optional[float]] = {}
        for year in self.compare_years:
            try:
                increases[year] = percent_increase(data, self.start_year, year)
            except InsufficientDataError as e:
                logger.warning(f"{name}: {e}")
                increases[year] = None

        # 基準年と、データのある最後の比較年で割合の低下を見る
        declining: List[int] = []
        available = [y for y in self.compare_years if increases.get(y) is not None]
        if available:
            declining = declining_weekdays(profile, self.start_year, available[-1])

        return {
            'name': name,
            'profile': profile,
            'strongest_weekdays': strongest_weekdays(profile),
            'increases': increases,
            'declining_weekdays': declining,
            'last_entry_date': last_entry_date(data),
        }

    @staticmethod
    def _format_weekdays(weekdays: List[int], separator: str) -> str:
        if not weekdays:
            return '-'
        return separator.join(WEEKDAY_ABBREVIATIONS.get(day, str(day)) for day in weekdays)

    def _format_summary(self, summary: Dict) -> str:
        lines = [
            '========================================',
            summary['name'],
            '========================================',
        ]
        if 'error' in summary:
            lines.append(f"Keine Daten: {summary['error']}")
            return '\n'.join(lines)

        last_date = summary['last_entry_date']
        lines.append('Frequenzstärkste Wochentage: '
                     + self._format_weekdays(summary['strongest_weekdays'], ', '))

        for year, increase in summary['increases'].items():
            caption = f"Anstieg {year} gegenüber {self.start_year}"
            if year == last_date.year:
                caption += f" (Daten nur bis {last_date.isoformat()})"
            value = 'N/A' if increase is None else f"{increase:+.1f} %"
            lines.append(f"{caption}: {value}")

        lines.append('Relativer Rückgang: '
                     + self._format_weekdays(summary['declining_weekdays'], ' + '))
        return '\n'.join(lines)

    def generate_summary_report(self) -> str:
        """
        全部分集合のサマリーレポートを生成

        Returns:
            レポート文字列
        """
        blocks = [self._format_summary(self.summarize(name)) for name in self.SUBSETS]
        return '\n\n'.join(blocks) + '\n'

"""
データベース管理クラス
正規化済み観測テーブルのスナップショットをSQLiteに保存する
"""
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional
import logging

import pandas as pd

from analysis.loader import OBSERVATION_COLUMNS, empty_observations
from config import CACHE_FILENAME, DATA_FOLDER

logger = logging.getLogger(__name__)

OBSERVATION_DTYPES = {
    'timestamp': 'datetime64[ns]',
    'count_in': 'int64',
    'count_out': 'int64',
    'count_total': 'int64',
    'is_post_reference_date': 'bool',
    'weekday': 'int64',
    'year': 'int64',
}


class FrequencyDatabase:
    """
    観測テーブルのスナップショットを管理するデータベースクラス
    ソースCSVの再正規化を省略するためだけに使う
    """

    def __init__(self, db_path: Path = DATA_FOLDER / CACHE_FILENAME):
        """
        Args:
            db_path: データベースファイルのパス
        """
        self.db_path = Path(db_path)
        self.conn = None
        self.init_database()
        logger.info(f"Database initialized at {db_path}")

    def init_database(self):
        """データベースとテーブルを作成"""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        cursor = self.conn.cursor()

        # 観測テーブル
        cursor.execute('''
        CREATE TABLE IF NOT EXISTS observations (
            timestamp TEXT NOT NULL,
            direction TEXT NOT NULL,
            location TEXT NOT NULL,
            count_in INTEGER NOT NULL,
            count_out INTEGER NOT NULL,
            count_total INTEGER NOT NULL,
            is_post_reference_date INTEGER NOT NULL,
            weekday INTEGER NOT NULL,
            year INTEGER NOT NULL
        )
        ''')

        # スナップショットのメタデータ（ソースのフィンガープリントなど）
        cursor.execute('''
        CREATE TABLE IF NOT EXISTS snapshot_meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        ''')

        cursor.execute('''
        CREATE INDEX IF NOT EXISTS idx_observations_year
        ON observations(year, weekday)
        ''')

        self.conn.commit()

    def save_observations(self,
                          observations: pd.DataFrame,
                          fingerprint: str,
                          settings: Optional[Dict] = None) -> int:
        """
        スナップショットを置き換える

        Args:
            observations: 観測テーブル
            fingerprint: ソースのフィンガープリント
            settings: 正規化設定（年、基準日、週の開始曜日）

        Returns:
            保存した行数
        """
        frame = observations[OBSERVATION_COLUMNS].copy()
        frame['timestamp'] = frame['timestamp'].dt.strftime('%Y-%m-%d %H:%M:%S')
        frame['is_post_reference_date'] = frame['is_post_reference_date'].astype(int)

        try:
            # 書き込み途中で失敗してもフィンガープリントが一致しないようにする
            self.conn.execute('DELETE FROM snapshot_meta')
            self.conn.execute('DELETE FROM observations')
            frame.to_sql('observations', self.conn, if_exists='append', index=False)
            self.conn.executemany('''
            INSERT OR REPLACE INTO snapshot_meta (key, value) VALUES (?, ?)
            ''', [
                ('fingerprint', fingerprint),
                ('created_at', datetime.now().isoformat(timespec='seconds')),
                ('settings', json.dumps(settings or {}, sort_keys=True)),
            ])
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Snapshot write error: {e}")
            raise

        logger.info(f"Saved {len(frame)} observations to snapshot")
        return len(frame)

    def load_observations(self) -> pd.DataFrame:
        """
        スナップショットから観測テーブルを復元（正規化直後と同じ型）

        Returns:
            DataFrame
        """
        query = f'''
        SELECT {", ".join(OBSERVATION_COLUMNS)} FROM observations
        '''
        frame = pd.read_sql_query(query, self.conn, parse_dates=['timestamp'])
        if frame.empty:
            logger.warning("Snapshot is empty")
            return empty_observations()

        frame = frame.astype(OBSERVATION_DTYPES)
        logger.info(f"Loaded {len(frame)} observations from snapshot")
        return frame

    def get_meta(self, key: str) -> Optional[str]:
        cursor = self.conn.cursor()
        cursor.execute('SELECT value FROM snapshot_meta WHERE key = ?', (key,))
        row = cursor.fetchone()
        return row[0] if row else None

    def get_settings(self) -> Optional[Dict]:
        """スナップショット作成時の正規化設定"""
        stored = self.get_meta('settings')
        return json.loads(stored) if stored else None

    def has_snapshot(self) -> bool:
        cursor = self.conn.cursor()
        cursor.execute('SELECT COUNT(*) FROM observations')
        return cursor.fetchone()[0] > 0

    def is_valid(self, fingerprint: str) -> bool:
        """スナップショットが同じソースから作られているか"""
        stored = self.get_meta('fingerprint')
        if stored is None or not self.has_snapshot():
            return False
        if stored != fingerprint:
            logger.warning("Snapshot is stale, sources have changed")
            return False
        return True

    def get_statistics(self) -> Dict:
        """
        スナップショットの統計情報を取得

        Returns:
            統計情報の辞書
        """
        cursor = self.conn.cursor()

        cursor.execute('SELECT COUNT(*) FROM observations')
        observation_count = cursor.fetchone()[0]

        cursor.execute('SELECT MIN(timestamp), MAX(timestamp) FROM observations')
        timestamp_range = cursor.fetchone()

        cursor.execute('SELECT DISTINCT year FROM observations ORDER BY year')
        years = [row[0] for row in cursor.fetchall()]

        return {
            'observation_records': observation_count,
            'timestamp_range': timestamp_range,
            'years': years,
            'created_at': self.get_meta('created_at'),
        }

    def clear(self):
        """スナップショットを削除"""
        self.conn.execute('DELETE FROM observations')
        self.conn.execute('DELETE FROM snapshot_meta')
        self.conn.commit()
        logger.info("Snapshot cleared")

    def close(self):
        """データベース接続を閉じる"""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed")

    def __enter__(self):
        """コンテキストマネージャーのサポート"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """コンテキストマネージャーのサポート"""
        self.close()

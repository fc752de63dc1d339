"""
プロジェクト共通の設定値
データフォルダは環境変数 HARDBRUECKE_DATA_FOLDER（.env可）で上書きできる
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# チューリッヒ市オープンデータ（VBZ Frequenzen Hardbrücke）
DATASET_URL = "https://data.stadt-zuerich.ch/dataset/vbz_frequenzen_hardbruecke"

DATA_FOLDER = Path(os.getenv("HARDBRUECKE_DATA_FOLDER", "data"))
YEARS = list(range(2020, 2025))
FILE_TEMPLATE = "frequenzen_hardbruecke_{year}.csv"
CACHE_FILENAME = "freq_df.db"

# ソースCSVの列
SOURCE_COLUMNS = ["Timestamp", "Name", "In", "Out"]
SOURCE_TIMEZONE = "Europe/Zurich"

# パンデミック後とみなす基準日
REFERENCE_DATE = "2022-04-01"

# 5分間隔 × 288 = 1日
INTERVALS_PER_DAY = 288

LABEL_DELIMITER = "-"
TOTAL_MARKER = "total"

# 1 = 月曜始まり
WEEK_START = 1
WORKDAYS = [1, 2, 3, 4, 5]

WEEKDAY_LABELS = {
    1: "Montag",
    2: "Dienstag",
    3: "Mittwoch",
    4: "Donnerstag",
    5: "Freitag",
    6: "Samstag",
    7: "Sonntag",
}

WEEKDAY_ABBREVIATIONS = {
    1: "Mo",
    2: "Di",
    3: "Mi",
    4: "Do",
    5: "Fr",
    6: "Sa",
    7: "So",
}

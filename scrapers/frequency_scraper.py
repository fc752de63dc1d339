"""
チューリッヒ市オープンデータから年別の通行量CSVをダウンロード
サーバー負荷に配慮した実装
"""
import re
import time
from pathlib import Path
from typing import Dict, Iterable, Optional
from urllib.parse import urljoin
import logging

import requests
from bs4 import BeautifulSoup

from config import DATA_FOLDER, DATASET_URL, FILE_TEMPLATE

logger = logging.getLogger(__name__)


class FrequencyScraper:
    """
    データセットページからCSVのリンクを探し、年ごとにダウンロードするクラス
    """

    def __init__(self, dataset_url: str = DATASET_URL, delay: float = 2.0):
        """
        Args:
            dataset_url: データセットページのURL
            delay: リクエスト間隔（秒）デフォルトは2秒
        """
        self.dataset_url = dataset_url
        self.delay = delay
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'
        })
        self._links: Optional[Dict[int, str]] = None
        logger.info(f"FrequencyScraper initialized with {delay}s delay")

    def find_csv_links(self) -> Dict[int, str]:
        """
        データセットページから年別CSVのURLを取得

        Returns:
            年をキーとしたURLの辞書（取得できない場合は空）
        """
        if self._links is not None:
            return self._links

        try:
            logger.info(f"Fetching dataset page {self.dataset_url}")
            response = self.session.get(self.dataset_url, timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {e}")
            return {}

        soup = BeautifulSoup(response.content, 'html.parser')
        self._links = self._parse_csv_links(soup)
        logger.info(f"Found CSV links for years {sorted(self._links)}")
        return self._links

    def _parse_csv_links(self, soup: BeautifulSoup) -> Dict[int, str]:
        """
        ページ内のリンクのうちファイル名テンプレートに一致するもの

        Args:
            soup: BeautifulSoupオブジェクト

        Returns:
            年をキーとしたURLの辞書
        """
        prefix, suffix = FILE_TEMPLATE.split('{year}')
        pattern = re.compile(re.escape(prefix) + r'(\d{4})' + re.escape(suffix) + r'$')

        links = {}
        for anchor in soup.find_all('a', href=True):
            href = anchor['href']
            match = pattern.search(href.split('?')[0])
            if match:
                links[int(match.group(1))] = urljoin(self.dataset_url, href)
        return links

    def download_year(self,
                      year: int,
                      target_folder: Path = DATA_FOLDER,
                      overwrite: bool = False) -> Optional[Path]:
        """
        1年分のCSVをダウンロード

        Args:
            year: 年
            target_folder: 保存先フォルダ
            overwrite: 既存ファイルを上書きするか

        Returns:
            保存したファイルのパス（失敗した場合はNone）
        """
        target = Path(target_folder) / FILE_TEMPLATE.format(year=year)
        if target.exists() and not overwrite:
            logger.info(f"Skipping {target.name} (already present)")
            return target

        url = self.find_csv_links().get(year)
        if url is None:
            logger.warning(f"No CSV link found for {year}")
            return None

        try:
            logger.info(f"Downloading {year} from {url}")
            response = self.session.get(url, timeout=60)
            response.raise_for_status()
        except requests.exceptions.Timeout:
            logger.error(f"Timeout error for {year}")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {e}")
            return None

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(response.content)
        logger.info(f"Saved {target} ({len(response.content)} bytes)")

        # サーバー負荷に配慮して遅延
        time.sleep(self.delay)

        return target

    def download_years(self,
                       years: Iterable[int],
                       target_folder: Path = DATA_FOLDER,
                       overwrite: bool = False) -> Dict[int, Path]:
        """
        複数年のCSVをダウンロード

        Returns:
            年をキーとした保存先パスの辞書（成功した年のみ）
        """
        results = {}

        for year in years:
            path = self.download_year(year, target_folder, overwrite)
            if path is not None:
                results[year] = path

        logger.info(f"Downloaded {len(results)} yearly files")
        return results

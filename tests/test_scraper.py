import pytest
import requests

from scrapers.frequency_scraper import FrequencyScraper

DATASET_PAGE = b"""
<html><body>
<ul class="resource-list">
  <li><a href="/dataset/x/resource/1/download/frequenzen_hardbruecke_2020.csv">2020</a></li>
  <li><a href="https://example.org/download/frequenzen_hardbruecke_2023.csv?raw=1">2023</a></li>
  <li><a href="/dataset/x/resource/3/download/hardbruecke.png">Bild</a></li>
  <li><a href="/dataset/x/resource/4/download/frequenzen_hardbruecke_2021.json">2021 JSON</a></li>
</ul>
</body></html>
"""


class FakeResponse:
    def __init__(self, content=b'', status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


@pytest.fixture
def scraper(monkeypatch):
    scraper = FrequencyScraper(dataset_url='https://data.example.org/dataset/x', delay=0)
    requested = []

    def fake_get(url, **kwargs):
        requested.append(url)
        if url == scraper.dataset_url:
            return FakeResponse(DATASET_PAGE)
        if url.endswith('2023.csv?raw=1'):
            return FakeResponse(status_code=503)
        return FakeResponse(b'Timestamp,Name,In,Out\n2020-01-06 00:00:00,Ost-VBZ,1,2\n')

    monkeypatch.setattr(scraper.session, 'get', fake_get)
    scraper.requested = requested
    return scraper


def test_find_csv_links(scraper):
    links = scraper.find_csv_links()

    assert links == {
        2020: 'https://data.example.org/dataset/x/resource/1/download/frequenzen_hardbruecke_2020.csv',
        2023: 'https://example.org/download/frequenzen_hardbruecke_2023.csv?raw=1',
    }
    # 2回目はページを取り直さない
    scraper.find_csv_links()
    assert scraper.requested.count(scraper.dataset_url) == 1


def test_download_year(scraper, tmp_path):
    path = scraper.download_year(2020, tmp_path)

    assert path == tmp_path / 'frequenzen_hardbruecke_2020.csv'
    assert path.read_bytes().startswith(b'Timestamp,Name,In,Out')


def test_download_year_skips_existing_file(scraper, tmp_path):
    existing = tmp_path / 'frequenzen_hardbruecke_2020.csv'
    existing.write_text('old')

    assert scraper.download_year(2020, tmp_path) == existing
    assert existing.read_text() == 'old'
    assert scraper.requested == []


def test_download_years_reports_only_successes(scraper, tmp_path):
    # 2023はHTTPエラー、2022はリンクなし
    results = scraper.download_years([2020, 2022, 2023], tmp_path)

    assert list(results) == [2020]
    assert not (tmp_path / 'frequenzen_hardbruecke_2023.csv').exists()


def test_dataset_page_unreachable(monkeypatch, tmp_path):
    scraper = FrequencyScraper(delay=0)

    def fake_get(url, **kwargs):
        raise requests.exceptions.ConnectionError('offline')

    monkeypatch.setattr(scraper.session, 'get', fake_get)

    assert scraper.find_csv_links() == {}
    assert scraper.download_year(2020, tmp_path) is None

import copy

import httpx
import pytest

from savevideo.config import AppConfig

POST_URL = "https://www.reddit.com/r/videos/comments/abc123/cat_plays_piano/"
MEDIA_BASE = "https://v.redd.it/k9x2m4/"

REDDIT_VIDEO = {
    "bitrate_kbps": 2400,
    "fallback_url": f"{MEDIA_BASE}DASH_720.mp4?source=fallback",
    "dash_url": f"{MEDIA_BASE}DASHPlaylist.mpd?a=1700000000",
    "hls_url": f"{MEDIA_BASE}HLSPlaylist.m3u8?a=1700000000",
    "duration": 31,
    "height": 720,
    "width": 1280,
    "is_gif": False,
}

POST_DATA = {
    "id": "abc123",
    "title": "Cat plays piano!! (must watch)",
    "thumbnail": "https://b.thumbs.redditmedia.com/cat.jpg",
    "url": "https://v.redd.it/k9x2m4",
    "permalink": "/r/videos/comments/abc123/cat_plays_piano/",
    "is_video": True,
    "media": {"reddit_video": REDDIT_VIDEO},
    "secure_media": {"reddit_video": REDDIT_VIDEO},
}

MPD = """<MPD xmlns="urn:mpeg:dash:schema:mpd:2011" mediaPresentationDuration="PT31S" type="static">
  <Period duration="PT31S">
    <AdaptationSet contentType="video" mimeType="video/mp4" segmentAlignment="true">
      <Representation id="360" bandwidth="500000" codecs="avc1.4d401e" width="640" height="360">
        <BaseURL>DASH_360.mp4</BaseURL>
      </Representation>
      <Representation id="720" bandwidth="1200000" codecs="avc1.4d401f" width="1280" height="720">
        <BaseURL>DASH_720.mp4</BaseURL>
      </Representation>
    </AdaptationSet>
    <AdaptationSet contentType="audio" mimeType="audio/mp4" codecs="mp4a.40.2">
      <Representation id="5" bandwidth="300000">
        <BaseURL>DASH_AUDIO_64.mp4</BaseURL>
      </Representation>
      <Representation id="6" bandwidth="900000">
        <BaseURL>DASH_AUDIO_128.mp4</BaseURL>
      </Representation>
    </AdaptationSet>
  </Period>
</MPD>
"""


def listing(data: dict) -> dict:
    return {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": data}]}}


def post_data(**overrides) -> dict:
    data = copy.deepcopy(POST_DATA)
    data.update(overrides)
    return data


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "REDDIT_CLIENT_ID",
        "REDDIT_CLIENT_SECRET",
        "REDDIT_USERNAME",
        "REDDIT_PASSWORD",
        "SAVEVIDEO_BASE_DIR",
        "BASE_DIR",
        "SAVEVIDEO_LOG_LEVEL",
        "SAVEVIDEO_LOG_PATH",
        "SAVEVIDEO_DOWNLOAD_RETRIES",
    ):
        # setenv first so values loaded from .env files are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        base_dir=tmp_path / "data",
        log_path=tmp_path / "logs" / "savevideo.log",
        download_retries=1,
        _env_file=None,
    )

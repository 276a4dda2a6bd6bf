import pytest

from savevideo.integrations.reddit_video.core.errors import NoVideoFound
from savevideo.integrations.reddit_video.core.models import RawPost
from savevideo.integrations.reddit_video.platforms.locator import locate_video
from tests.conftest import MEDIA_BASE, REDDIT_VIDEO, post_data


def make_post(**fields) -> RawPost:
    data = post_data(media=None, secure_media=None)
    data.update(fields)
    return RawPost.model_validate(data)


def test_media_record_is_used_first():
    other = {**REDDIT_VIDEO, "fallback_url": "https://v.redd.it/other/DASH_480.mp4"}
    post = make_post(
        media={"reddit_video": REDDIT_VIDEO},
        secure_media={"reddit_video": other},
        crosspost_parent_list=[{"media": {"reddit_video": other}}],
    )

    descriptor = locate_video(post)

    assert descriptor.fallback_url == REDDIT_VIDEO["fallback_url"]
    assert descriptor.base_url == MEDIA_BASE
    assert descriptor.duration == 31


def test_secure_media_when_media_missing():
    post = make_post(secure_media={"type": "v.redd.it", "reddit_video": REDDIT_VIDEO})
    assert locate_video(post).dash_url == REDDIT_VIDEO["dash_url"]


def test_crosspost_parent_record():
    parent = {"media": {"reddit_video": {**REDDIT_VIDEO, "hls_url": None}}}
    post = make_post(is_video=False, crosspost_parent_list=[parent])

    descriptor = locate_video(post)

    assert descriptor.fallback_url == REDDIT_VIDEO["fallback_url"]
    assert descriptor.hls_url == ""


@pytest.mark.parametrize(
    "fields",
    [
        {},
        {"media": {"oembed": {"type": "video"}}},
        {"media": {"reddit_video": {}}},
        {"crosspost_parent_list": []},
        {"crosspost_parent_list": [{"media": None}]},
    ],
)
def test_no_video_record(fields):
    with pytest.raises(NoVideoFound) as excinfo:
        locate_video(make_post(**fields))
    assert excinfo.value.status_code == 404


def test_custom_strategy_order():
    post = make_post(media={"reddit_video": REDDIT_VIDEO})
    with pytest.raises(NoVideoFound):
        locate_video(post, strategies=[])

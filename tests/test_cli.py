import argparse
import json
import logging

import pytest

from savevideo.integrations.reddit_video.cli import main_async


@pytest.fixture
def cli_args(tmp_path):
    env_file = tmp_path / "cli.env"
    env_file.write_text(f"SAVEVIDEO_BASE_DIR={tmp_path / 'data'}\nSAVEVIDEO_LOG_PATH={tmp_path / 'logs' / 'cli.log'}\n")

    def build(url, **overrides):
        values = dict(url=url, base_dir=None, env_file=str(env_file), verify=False, log_level="WARNING")
        values.update(overrides)
        return argparse.Namespace(**values)

    yield build
    # configure_logging replaced the root handlers; close the file handler
    for handler in list(logging.getLogger().handlers):
        handler.close()
        logging.getLogger().removeHandler(handler)


@pytest.mark.asyncio
async def test_non_reddit_url_is_rejected(cli_args):
    assert await main_async(cli_args("https://youtube.com/watch?v=abc")) == 2


@pytest.mark.asyncio
async def test_pipeline_error_prints_message(cli_args, capsys, tmp_path):
    code = await main_async(cli_args("https://www.reddit.com/r/videos/", base_dir=str(tmp_path / "other")))

    assert code == 1
    last_line = capsys.readouterr().err.strip().splitlines()[-1]
    assert json.loads(last_line) == {"message": "Could not extract post ID from URL"}
    assert (tmp_path / "other" / "temp").is_dir()

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from ...app import VideoSaver
from ...config import ConfigError, load_config
from ...logging_utils import configure_logging
from .core.errors import PipelineError
from .core.utils import setup_logging

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


async def main_async(args: argparse.Namespace) -> int:
    logger = setup_logging(args.log_level or "INFO")
    try:
        config = load_config(Path(args.env_file) if args.env_file else None)
    except ConfigError as exc:
        logger.error("%s: %s", exc, exc.__cause__)
        return 2

    overrides: dict[str, object] = {}
    if args.base_dir:
        overrides["base_dir"] = Path(args.base_dir).expanduser().resolve()
    if args.log_level:
        overrides["log_level"] = args.log_level
    if overrides:
        config = config.model_copy(update=overrides)
    logger = configure_logging(config)

    if not VideoSaver.supports(args.url):
        logger.error("Not a Reddit URL: %s", args.url)
        return 2

    async with VideoSaver(config) as saver:
        if args.verify:
            name = await saver.verify_credentials()
            logger.info("OAuth account: %s", name or "not authenticated")
        try:
            record = await saver.download(args.url)
        except PipelineError as exc:
            logger.error("Download failed at %s: %s", exc.stage, exc.message)
            print(json.dumps(exc.to_response()), file=sys.stderr)
            return 1

    print(json.dumps(record.to_response(), indent=2))
    return 0


def main() -> None:
    p = argparse.ArgumentParser(description="Download a Reddit video post as a single mp4")
    p.add_argument("url", help="Reddit post URL (reddit.com/.../comments/<id>/... or redd.it/<id>)")
    p.add_argument("--base-dir", help="Directory holding temp/ and files/ (overrides SAVEVIDEO_BASE_DIR)")
    p.add_argument("--env-file", help="Path to a .env file")
    p.add_argument("--verify", action="store_true", help="Check the OAuth credentials before downloading")
    p.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS)
    args = p.parse_args()
    sys.exit(asyncio.run(main_async(args)))


if __name__ == "__main__":
    main()

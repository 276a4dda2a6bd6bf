import asyncio
import sys
from pathlib import Path

import pytest

from savevideo.integrations.reddit_video.core.errors import MergeFailed
from savevideo.utils.media import Merger, merge_command


def test_merge_command_copies_video_and_encodes_audio():
    cmd = merge_command("ffmpeg", Path("v.mp4"), Path("a.mp4"), Path("out.mp4"))

    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-c:v") + 1] == "copy"
    assert cmd[cmd.index("-c:a") + 1] == "aac"
    assert "-shortest" in cmd
    assert cmd[-1] == "out.mp4"
    assert cmd.count("-i") == 2


@pytest.mark.asyncio
async def test_missing_binary_raises_merge_failed(tmp_path):
    merger = Merger("savevideo-no-such-ffmpeg")
    with pytest.raises(MergeFailed) as excinfo:
        await merger.merge(tmp_path / "v.mp4", tmp_path / "a.mp4", tmp_path / "out.mp4")

    assert "not found" in excinfo.value.message
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_non_zero_exit_removes_partial_output(tmp_path):
    video, audio, output = tmp_path / "v.mp4", tmp_path / "a.mp4", tmp_path / "out.mp4"
    video.write_bytes(b"v")
    audio.write_bytes(b"a")
    output.write_bytes(b"stale")

    # the interpreter rejects ffmpeg's arguments and exits non-zero
    with pytest.raises(MergeFailed) as excinfo:
        await Merger(sys.executable, timeout=30).merge(video, audio, output)

    assert "failed with code" in excinfo.value.message
    assert not output.exists()


@pytest.fixture
def stalled_ffmpeg(tmp_path):
    script = tmp_path / "stalled-ffmpeg"
    script.write_text(f"#!{sys.executable}\nimport time\ntime.sleep(30)\n")
    script.chmod(0o755)
    return str(script)


@pytest.fixture
def merge_inputs(tmp_path):
    video, audio, output = tmp_path / "v.mp4", tmp_path / "a.mp4", tmp_path / "out.mp4"
    video.write_bytes(b"v")
    audio.write_bytes(b"a")
    output.write_bytes(b"partial")
    return video, audio, output


@pytest.mark.asyncio
async def test_timeout_raises_merge_failed_and_removes_output(stalled_ffmpeg, merge_inputs):
    video, audio, output = merge_inputs

    with pytest.raises(MergeFailed, match="timed out"):
        await Merger(stalled_ffmpeg, timeout=0.1).merge(video, audio, output)

    assert not output.exists()


@pytest.mark.asyncio
async def test_cancellation_kills_ffmpeg_and_removes_output(monkeypatch, stalled_ffmpeg, merge_inputs):
    video, audio, output = merge_inputs
    started = asyncio.Event()
    processes = []
    spawn = asyncio.create_subprocess_exec

    async def recording_spawn(*args, **kwargs):
        proc = await spawn(*args, **kwargs)
        processes.append(proc)
        started.set()
        return proc

    monkeypatch.setattr(asyncio, "create_subprocess_exec", recording_spawn)

    task = asyncio.create_task(Merger(stalled_ffmpeg, timeout=30).merge(video, audio, output))
    await asyncio.wait_for(started.wait(), timeout=10)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert processes[0].returncode is not None
    assert not output.exists()

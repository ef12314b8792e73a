"""
Tests for media info extraction functionality.

Test cases:
1. Parse duration
2. Parse video stream parameters
3. Handle ffprobe failures
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from slidereel.utils.media_info import get_media_duration, get_video_info


def _completed(payload: dict, returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=json.dumps(payload), stderr=stderr)


class TestMediaInfo:
    """Test media info extraction using a stubbed ffprobe."""

    def test_get_media_duration(self):
        with patch("slidereel.utils.media_info.subprocess.run", return_value=_completed({"format": {"duration": "19.033"}})):
            assert get_media_duration("out.mp4") == 19033

    def test_duration_missing_raises(self):
        with patch("slidereel.utils.media_info.subprocess.run", return_value=_completed({"format": {}})):
            with pytest.raises(RuntimeError, match="Duration not found"):
                get_media_duration("out.mp4")

    def test_get_video_info(self):
        payload = {
            "streams": [
                {
                    "codec_name": "h264",
                    "width": 1920,
                    "height": 1080,
                    "r_frame_rate": "30/1",
                    "pix_fmt": "yuv420p",
                    "nb_frames": "570",
                }
            ],
            "format": {"duration": "19.000000"},
        }
        with patch("slidereel.utils.media_info.subprocess.run", return_value=_completed(payload)) as run:
            info = get_video_info("out.mp4")

        assert info.width == 1920
        assert info.height == 1080
        assert info.fps == 30
        assert info.video_codec == "h264"
        assert info.pix_fmt == "yuv420p"
        assert info.frame_count == 570
        assert info.duration_ms == 19000
        cmd = run.call_args.args[0]
        assert cmd[-1] == "out.mp4"
        assert "-select_streams" in cmd

    def test_no_video_stream_raises(self):
        with patch("slidereel.utils.media_info.subprocess.run", return_value=_completed({"streams": []})):
            with pytest.raises(RuntimeError, match="No video stream"):
                get_video_info("audio.m4a")

    def test_ffprobe_failure_raises(self):
        with patch(
            "slidereel.utils.media_info.subprocess.run",
            return_value=_completed({}, returncode=1, stderr="No such file"),
        ):
            with pytest.raises(RuntimeError, match="ffprobe failed"):
                get_video_info("missing.mp4")

    def test_ffprobe_missing_raises_runtime_error(self):
        with patch("slidereel.utils.media_info.subprocess.run", side_effect=FileNotFoundError("ffprobe")):
            with pytest.raises(RuntimeError, match="could not be started"):
                get_media_duration("out.mp4")

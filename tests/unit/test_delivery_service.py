"""
Unit tests for the media delivery chains.

This module tests:
- app/services/delivery_service.py strategy ordering and fallbacks
- Format selector mapping for MP4 quality values
"""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi.responses import RedirectResponse, StreamingResponse

from app.services import delivery_service
from app.services.delivery_service import (
    AlternateFormatStrategy,
    ConverterRedirectStrategy,
    DeliveryChain,
    DeliveryExhausted,
    DeliveryFailed,
    DeliveryRequest,
    DirectStreamStrategy,
    Mp3ConversionStrategy,
    build_external_url,
    build_mp4_chain,
    is_valid_quality,
    mp4_format_selector,
)
from app.services.ytdlp_service import VideoUnavailable


VIDEO_ID = "dQw4w9WgXcQ"


def _upstream(ok=True, content_length="11"):
    response = MagicMock()
    response.headers = {"Content-Length": content_length}
    response.iter_content.return_value = iter([b"hello", b" world"])
    if not ok:
        response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
    return response


class _Failing:
    def __init__(self, name, error):
        self.name = name
        self.error = error
        self.calls = 0

    def deliver(self, request):
        self.calls += 1
        raise self.error


class _Succeeding:
    name = "ok"

    def __init__(self):
        self.calls = 0

    def deliver(self, request):
        self.calls += 1
        return RedirectResponse("https://example.com")


class TestFormatSelector:

    def test_highest(self):
        assert mp4_format_selector("highest").startswith("best[ext=mp4]")

    def test_lowest(self):
        assert mp4_format_selector("lowest").startswith("worst[ext=mp4]")

    def test_height(self):
        assert "height<=720" in mp4_format_selector("720p")

    def test_raw_format_id_passes_through(self):
        assert mp4_format_selector("18") == "18"

    @pytest.mark.parametrize("quality", ["highest", "lowest", "720p", "18", "hls-1080p"])
    def test_valid_quality(self, quality):
        assert is_valid_quality(quality) is True

    @pytest.mark.parametrize("quality", ["best[height", "bv+ba", "best/worst", "", "a" * 40])
    def test_selector_syntax_is_not_a_quality(self, quality):
        assert is_valid_quality(quality) is False


class TestDeliveryChain:

    def test_first_success_wins(self):
        first = _Succeeding()
        second = _Succeeding()
        response = DeliveryChain([first, second]).deliver(DeliveryRequest(VIDEO_ID, "mp4"))

        assert isinstance(response, RedirectResponse)
        assert first.calls == 1
        assert second.calls == 0

    def test_falls_through_failures_in_order(self):
        broken = _Failing("broken", DeliveryFailed("nope"))
        missing = _Failing("missing", VideoUnavailable("gone"))
        last = _Succeeding()

        DeliveryChain([broken, missing, last]).deliver(DeliveryRequest(VIDEO_ID, "mp4"))

        assert (broken.calls, missing.calls, last.calls) == (1, 1, 1)

    def test_exhausted_collects_every_reason(self):
        chain = DeliveryChain([
            _Failing("a", DeliveryFailed("first")),
            _Failing("b", VideoUnavailable("second")),
        ])

        with pytest.raises(DeliveryExhausted) as exc_info:
            chain.deliver(DeliveryRequest(VIDEO_ID, "audio"))

        assert exc_info.value.failures == [("a", "first"), ("b", "second")]
        assert "a: first" in str(exc_info.value)

    def test_unexpected_errors_propagate(self):
        chain = DeliveryChain([_Failing("boom", RuntimeError("bug")), _Succeeding()])
        with pytest.raises(RuntimeError):
            chain.deliver(DeliveryRequest(VIDEO_ID, "mp4"))

    def test_mp4_chain_order(self):
        names = [s.name for s in build_mp4_chain().strategies]
        assert names == ["direct_stream", "alternate_formats", "converter_redirect"]


class TestDirectStreamStrategy:

    def test_streams_resolved_format(self):
        stream = {"title": "My Song!", "url": "https://media.example/18", "ext": "mp4",
                  "format_id": "18", "filesize": 11, "http_headers": {"User-Agent": "x"}}
        strategy = DirectStreamStrategy(lambda r: "best", "video/mp4")

        with patch.object(delivery_service.ytdlp_service, "resolve_stream", return_value=stream), \
                patch("requests.get", return_value=_upstream()) as mock_get:
            response = strategy.deliver(DeliveryRequest(VIDEO_ID, "mp4"))

        assert isinstance(response, StreamingResponse)
        assert response.media_type == "video/mp4"
        assert response.headers["content-disposition"] == 'attachment; filename="My Song.mp4"'
        assert response.headers["content-length"] == "11"
        mock_get.assert_called_once()
        assert mock_get.call_args.kwargs["stream"] is True
        assert mock_get.call_args.kwargs["headers"] == {"User-Agent": "x"}

    def test_no_attachment_header_for_playback(self):
        stream = {"title": "t", "url": "u", "ext": "m4a", "format_id": "140",
                  "filesize": None, "http_headers": {}}
        strategy = DirectStreamStrategy(lambda r: "bestaudio", "audio/mpeg")

        with patch.object(delivery_service.ytdlp_service, "resolve_stream", return_value=stream), \
                patch("requests.get", return_value=_upstream()):
            response = strategy.deliver(DeliveryRequest(VIDEO_ID, "audio", attachment=False))

        assert "content-disposition" not in response.headers
        assert response.media_type == "audio/mp4"

    def test_upstream_error_becomes_delivery_failed(self):
        stream = {"title": "t", "url": "u", "ext": "mp4", "format_id": "18",
                  "filesize": None, "http_headers": {}}
        strategy = DirectStreamStrategy(lambda r: "best", "video/mp4")

        with patch.object(delivery_service.ytdlp_service, "resolve_stream", return_value=stream), \
                patch("requests.get", return_value=_upstream(ok=False)):
            with pytest.raises(DeliveryFailed):
                strategy.deliver(DeliveryRequest(VIDEO_ID, "mp4"))


class TestAlternateFormatStrategy:

    def test_skips_formats_that_fail_to_open(self):
        listing = {"title": "t", "formats": [
            {"format_id": "22", "ext": "mp4", "url": "https://media.example/22"},
            {"format_id": "18", "ext": "mp4", "url": "https://media.example/18"},
        ]}
        strategy = AlternateFormatStrategy(audio_only=False, default_type="video/mp4")

        with patch.object(delivery_service.ytdlp_service, "list_stream_candidates", return_value=listing), \
                patch("requests.get", side_effect=[_upstream(ok=False), _upstream()]) as mock_get:
            response = strategy.deliver(DeliveryRequest(VIDEO_ID, "mp4"))

        assert isinstance(response, StreamingResponse)
        assert [c.args[0] for c in mock_get.call_args_list] == [
            "https://media.example/22", "https://media.example/18"
        ]

    def test_no_candidates(self):
        strategy = AlternateFormatStrategy(audio_only=True, default_type="audio/mpeg")
        with patch.object(delivery_service.ytdlp_service, "list_stream_candidates",
                          return_value={"title": "t", "formats": []}):
            with pytest.raises(DeliveryFailed):
                strategy.deliver(DeliveryRequest(VIDEO_ID, "audio"))

    def test_all_candidates_fail(self):
        listing = {"title": "t", "formats": [{"format_id": str(i), "url": f"u{i}"} for i in range(5)]}
        strategy = AlternateFormatStrategy(audio_only=True, default_type="audio/mpeg", max_attempts=2)

        with patch.object(delivery_service.ytdlp_service, "list_stream_candidates", return_value=listing), \
                patch("requests.get", side_effect=requests.ConnectionError("down")) as mock_get:
            with pytest.raises(DeliveryFailed):
                strategy.deliver(DeliveryRequest(VIDEO_ID, "audio"))

        assert mock_get.call_count == 2


class TestMp3ConversionStrategy:

    @pytest.mark.asyncio
    async def test_streams_file_then_deletes_it(self, tmp_path):
        path = tmp_path / f"{VIDEO_ID}_abcd1234.mp3"
        path.write_bytes(b"ID3fake")

        with patch.object(delivery_service.ytdlp_service, "convert_to_mp3",
                          return_value={"title": "Song", "path": str(path)}) as mock_convert:
            response = Mp3ConversionStrategy().deliver(DeliveryRequest(VIDEO_ID, "mp3", bitrate="192"))

        mock_convert.assert_called_once_with(VIDEO_ID, "192")
        assert response.media_type == "audio/mpeg"
        assert response.headers["content-length"] == "7"

        body = b"".join([chunk async for chunk in response.body_iterator])
        assert body == b"ID3fake"
        assert not os.path.exists(path)


class TestConverterRedirect:

    def test_redirects_to_configured_service(self):
        response = ConverterRedirectStrategy("y2mate").deliver(DeliveryRequest(VIDEO_ID, "mp3"))
        assert response.status_code == 307
        assert response.headers["location"] == f"https://www.y2mate.com/youtube/{VIDEO_ID}"

    def test_unknown_service_fails(self):
        with pytest.raises(DeliveryFailed):
            ConverterRedirectStrategy("nowhere").deliver(DeliveryRequest(VIDEO_ID, "mp3"))

    def test_build_external_url(self):
        assert build_external_url("ssyoutube", VIDEO_ID) == f"https://ssyoutube.com/watch?v={VIDEO_ID}"
        assert build_external_url("unknown", VIDEO_ID) is None

"""Tests for the Content Posting API publish flow."""

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from tiktok_login_kit.domain.enums import PrivacyLevel, PublishMode, PublishState
from tiktok_login_kit.errors import (
    ApiError,
    CapabilityViolationError,
    ErrorKind,
    MalformedResponseError,
    TransportError,
    UploadSessionError,
)
from tiktok_login_kit.publishing import (
    CreatorQuery,
    ImagesFromUrls,
    PublishInfo,
    PublishStatus,
    VideoFromFile,
    VideoFromUrl,
)
from tiktok_login_kit.publishing.uploads import _PostRequest, _VideoRequest

CREATOR_PATH = "/v2/post/publish/creator_info/query/"
VIDEO_INIT_PATH = "/v2/post/publish/video/init/"
CONTENT_INIT_PATH = "/v2/post/publish/content/init/"
STATUS_PATH = "/v2/post/publish/status/fetch/"
UPLOAD_URL = "https://open-upload.tiktokapis.com/video/?upload_id=67890&upload_token=Xza123"
UPLOAD_PATH = "/video/"


def init_response(publish_id: str = "v_pub_url~v2.123", upload_url: str = "") -> dict:
    data = {"publish_id": publish_id}
    if upload_url:
        data["upload_url"] = upload_url
    return {"data": data, "error": {"code": "ok", "message": "", "log_id": "log_init"}}


def status_response(status: str, **data) -> dict:
    return {"data": {"status": status, **data}, "error": {"code": "ok", "message": "", "log_id": "log_status"}}


@pytest.fixture
def restricted_creator(creator_payload):
    """Creator info where duet is disabled and only SELF_ONLY is allowed."""
    creator_payload["data"]["duet_disabled"] = True
    creator_payload["data"]["privacy_level_options"] = ["SELF_ONLY"]
    return creator_payload


class TestPublishInfo:
    """Tests for parsing init responses."""

    def test_success(self):
        """Test a successful init with an upload URL."""
        info = PublishInfo.from_json(init_response("p1", UPLOAD_URL))

        assert info.success is True
        assert info.publish_id == "p1"
        assert info.upload_url == UPLOAD_URL
        assert info.error_code == "ok"
        assert info.log_id == "log_init"

    def test_business_error(self):
        """Test a reported error is not a parse failure."""
        info = PublishInfo.from_json(
            {"data": {}, "error": {"code": "spam_risk_too_many_posts", "message": "Too many posts"}}
        )

        assert info.success is False
        assert info.error_code == "spam_risk_too_many_posts"
        assert info.error_message == "Too many posts"

    def test_missing_error_code(self):
        """Test that a payload without error.code is malformed."""
        with pytest.raises(MalformedResponseError) as exc_info:
            PublishInfo.from_json({"data": {"publish_id": "p1"}})

        assert exc_info.value.kind == ErrorKind.MALFORMED_RESPONSE


class TestPublishStatus:
    """Tests for parsing status responses."""

    def test_complete_fixture(self):
        """Test the minimal PUBLISH_COMPLETE fixture."""
        status = PublishStatus.from_json({"data": {"status": "PUBLISH_COMPLETE"}, "error": {"code": "ok"}})

        assert status.success is True
        assert status.status == "PUBLISH_COMPLETE"
        assert status.public_post_id == ""
        assert status.is_terminal
        assert status.is_complete

    def test_post_id_list_uses_first(self):
        """Test that only the first public post id is used."""
        status = PublishStatus.from_json(
            status_response("PUBLISH_COMPLETE", publicaly_available_post_id=[7300000000000000001, 7300000000000000002])
        )

        assert status.public_post_id == "7300000000000000001"

    def test_post_id_scalar(self):
        """Test a single public post id value."""
        status = PublishStatus.from_json(status_response("PUBLISH_COMPLETE", publicaly_available_post_id="7300"))

        assert status.public_post_id == "7300"

    def test_processing_is_not_terminal(self):
        """Test that processing statuses keep polling going."""
        status = PublishStatus.from_json(status_response("PROCESSING_UPLOAD"))

        assert status.success is True
        assert not status.is_terminal
        assert not status.is_complete

    def test_failed(self):
        """Test that FAILED carries the fail reason."""
        status = PublishStatus.from_json(status_response("FAILED", fail_reason="file_format_check_failed"))

        assert status.success is False
        assert status.error_code == "FAILED"
        assert status.error_message == "file_format_check_failed"
        assert status.is_terminal

    def test_api_error(self):
        """Test that a non-ok code is reported as a failed status."""
        status = PublishStatus.from_json(
            {"error": {"code": "invalid_publish_id", "message": "Publish id not found", "log_id": "l"}}
        )

        assert status.success is False
        assert status.status == "invalid_publish_id"
        assert status.error_code == "invalid_publish_id"
        assert status.is_terminal

    def test_missing_error_code(self):
        """Test that a payload without error.code is malformed."""
        with pytest.raises(MalformedResponseError):
            PublishStatus.from_json({"data": {"status": "PUBLISH_COMPLETE"}})

    def test_missing_status(self):
        """Test that an ok payload without data.status is malformed."""
        with pytest.raises(MalformedResponseError):
            PublishStatus.from_json({"data": {}, "error": {"code": "ok"}})


class TestUploadRequests:
    """Tests for building publish requests."""

    def test_base_requests_are_abstract(self):
        """Test that only concrete post kinds can be built."""
        with pytest.raises(TypeError):
            _PostRequest(title="t")
        with pytest.raises(TypeError):
            _VideoRequest(title="t")

    def test_video_from_url_payload(self):
        """Test the post_info and source_info of a pulled video."""
        request = VideoFromUrl(
            url="https://cdn.example.com/clip.mp4",
            title="My clip #fyp",
            privacy_level=PrivacyLevel.PUBLIC,
            stitch_off=True,
        )

        assert request.build_payload() == {
            "post_info": {
                "title": "My clip #fyp",
                "privacy_level": "PUBLIC_TO_EVERYONE",
                "disable_comment": False,
                "disable_duet": False,
                "disable_stitch": True,
                "video_cover_timestamp_ms": 1000,
                "brand_content_toggle": False,
                "brand_organic_toggle": False,
            },
            "source_info": {
                "source": "PULL_FROM_URL",
                "video_url": "https://cdn.example.com/clip.mp4",
            },
        }

    def test_video_from_file_payload(self, video_file):
        """Test that a file is announced as a single chunk."""
        request = VideoFromFile(path=video_file, title="Local")
        size = video_file.stat().st_size

        assert request.size == size
        assert request.mime_type == "video/mp4"
        assert request.is_file_upload
        assert request.build_payload()["source_info"] == {
            "source": "FILE_UPLOAD",
            "video_size": size,
            "chunk_size": size,
            "total_chunk_count": 1,
        }

    def test_images_payload(self):
        """Test the photo post payload."""
        request = ImagesFromUrls(
            urls=["https://cdn.example.com/1.jpg", "https://cdn.example.com/2.jpg"],
            title="Holiday",
            photo_cover_index=1,
            auto_add_music=True,
        )

        payload = request.build_payload()

        assert payload["media_type"] == "PHOTO"
        assert payload["post_mode"] == "DIRECT_POST"
        assert payload["post_info"]["description"] == "Holiday"
        assert payload["post_info"]["auto_add_music"] is True
        assert "disable_duet" not in payload["post_info"]
        assert payload["source_info"] == {
            "source": "PULL_FROM_URL",
            "photo_cover_index": 1,
            "photo_images": ["https://cdn.example.com/1.jpg", "https://cdn.example.com/2.jpg"],
        }
        assert not request.supports_duet_stitch

    def test_default_privacy_is_private(self):
        """Test that posts are private unless asked otherwise."""
        request = VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t")

        assert request.privacy_level == "SELF_ONLY"

    def test_invalid_privacy(self):
        """Test that an unknown privacy level is rejected."""
        with pytest.raises(ValueError, match="Privacy Level"):
            VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t", privacy_level="EVERYONE")

    def test_invalid_url(self):
        """Test that a non-http URL is rejected."""
        with pytest.raises(ValueError):
            VideoFromUrl(url="ftp://cdn.example.com/clip.mp4", title="t")

    def test_missing_file(self, tmp_path):
        """Test that a missing file is rejected."""
        with pytest.raises(ValueError, match="doesn't exist"):
            VideoFromFile(path=tmp_path / "nope.mp4", title="t")

    def test_empty_file(self, tmp_path):
        """Test that an empty file is rejected."""
        path = tmp_path / "empty.mp4"
        path.write_bytes(b"")

        with pytest.raises(ValueError, match="empty"):
            VideoFromFile(path=path, title="t")

    def test_images_require_urls(self):
        """Test that a photo post needs at least one image."""
        with pytest.raises(ValueError):
            ImagesFromUrls(urls=[], title="t")

    def test_images_cover_index_in_range(self):
        """Test that the cover index must point at an image."""
        with pytest.raises(ValueError):
            ImagesFromUrls(urls=["https://cdn.example.com/1.jpg"], title="t", photo_cover_index=1)

    def test_with_changes_copies(self):
        """Test that with_changes leaves the original untouched."""
        request = VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t", duet_off=False)

        changed = request.with_changes(duet_off=True)

        assert changed.duet_off is True
        assert request.duet_off is False
        with pytest.raises(ValueError):
            request.with_changes(privacy_level="bogus")


class TestCreatorCapabilities:
    """Tests for querying creator info."""

    def test_query(self, api, connector, creator_payload):
        """Test parsing a full creator info response."""
        api.add(CREATOR_PATH, creator_payload)

        creator = connector.query_capabilities()

        assert creator.nickname == "Test Creator"
        assert creator.username == "testcreator"
        assert creator.max_video_duration_sec == 300
        assert creator.has_privacy_option("PUBLIC_TO_EVERYONE")
        assert not creator.duet_off

        request = api.calls(CREATOR_PATH)[0]
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer act.test_token"

    def test_unknown_privacy_options_dropped(self):
        """Test that unrecognized privacy options are ignored."""
        creator = CreatorQuery.from_json(
            {
                "data": {
                    "creator_nickname": "Test",
                    "privacy_level_options": ["SELF_ONLY", "CLOSE_FRIENDS_ONLY", None],
                },
                "error": {"code": "ok"},
            }
        )

        assert creator.privacy_options == frozenset({"SELF_ONLY"})
        assert not creator.has_privacy_option("CLOSE_FRIENDS_ONLY")

    def test_missing_nickname(self):
        """Test that a payload without the nickname is malformed."""
        with pytest.raises(MalformedResponseError):
            CreatorQuery.from_json({"data": {"privacy_level_options": ["SELF_ONLY"]}, "error": {"code": "ok"}})

    def test_api_error(self, api, connector):
        """Test that a provider error is raised."""
        api.add(
            CREATOR_PATH,
            {"data": {}, "error": {"code": "scope_not_authorized", "message": "video.publish not granted"}},
        )

        with pytest.raises(ApiError) as exc_info:
            connector.query_capabilities()

        assert exc_info.value.code == "scope_not_authorized"


class TestStrictPublish:
    """Tests for publish with capability validation."""

    def test_publish_from_url(self, api, connector, creator_payload):
        """Test a successful pulled video publish."""
        api.add(CREATOR_PATH, creator_payload)
        api.add(VIDEO_INIT_PATH, init_response("v_pub_url~v2.1"))

        info = connector.publish(VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t"))

        assert info.success is True
        assert info.publish_id == "v_pub_url~v2.1"
        body = api.json_body(api.calls(VIDEO_INIT_PATH)[0])
        assert body["source_info"]["video_url"] == "https://cdn.example.com/clip.mp4"

    def test_duet_violation_fails_before_init(self, api, connector, restricted_creator):
        """Test that duet on is rejected when the creator disabled duet."""
        api.add(CREATOR_PATH, restricted_creator)
        request = VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t", duet_off=False)

        with pytest.raises(CapabilityViolationError) as exc_info:
            connector.publish(request)

        assert "Duet" in str(exc_info.value)
        assert exc_info.value.kind == ErrorKind.CAPABILITY_VIOLATION
        assert api.calls(VIDEO_INIT_PATH) == []

    def test_privacy_violation(self, api, connector, restricted_creator):
        """Test that a privacy level outside the allowed set is rejected."""
        api.add(CREATOR_PATH, restricted_creator)
        request = VideoFromUrl(
            url="https://cdn.example.com/clip.mp4",
            title="t",
            privacy_level=PrivacyLevel.PUBLIC,
            duet_off=True,
        )

        with pytest.raises(CapabilityViolationError, match="privacy level"):
            connector.publish(request)

    def test_comment_violation(self, api, connector, creator_payload):
        """Test that comments on is rejected when the creator disabled comments."""
        creator_payload["data"]["comment_disabled"] = True
        api.add(CREATOR_PATH, creator_payload)

        with pytest.raises(CapabilityViolationError, match="Comments"):
            connector.publish(VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t"))

    def test_images_ignore_duet(self, api, connector, restricted_creator):
        """Test that duet and stitch restrictions do not apply to photos."""
        api.add(CREATOR_PATH, restricted_creator)
        api.add(CONTENT_INIT_PATH, init_response("p_pub_url~v2.1"))

        info = connector.publish(ImagesFromUrls(urls=["https://cdn.example.com/1.jpg"], title="t"))

        assert info.success is True
        assert len(api.calls(CONTENT_INIT_PATH)) == 1

    def test_capabilities_fetched_every_time(self, api, connector, creator_payload):
        """Test that capabilities are never cached between publishes."""
        api.add(CREATOR_PATH, creator_payload)
        api.add(VIDEO_INIT_PATH, init_response())
        request = VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t")

        connector.publish(request)
        connector.publish(request)

        assert len(api.calls(CREATOR_PATH)) == 2

    def test_init_rejected(self, api, connector, creator_payload):
        """Test that a rejected init is returned as an unsuccessful PublishInfo."""
        api.add(CREATOR_PATH, creator_payload)
        api.add(
            VIDEO_INIT_PATH,
            {"data": {}, "error": {"code": "url_ownership_unverified", "message": "Verify the domain"}},
        )

        attempt = connector.start_publish(VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t"))

        assert attempt.state == PublishState.FAILED
        assert attempt.info.success is False
        assert attempt.info.error_code == "url_ownership_unverified"


class TestLenientPublish:
    """Tests for publish replacing invalid values."""

    def test_duet_forced_off(self, api, connector, restricted_creator):
        """Test that the outgoing payload disables duet instead of failing."""
        api.add(CREATOR_PATH, restricted_creator)
        api.add(VIDEO_INIT_PATH, init_response())
        request = VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t", duet_off=False)

        info = connector.publish_replacing_invalid_values(request)

        assert info.success is True
        post_info = api.json_body(api.calls(VIDEO_INIT_PATH)[0])["post_info"]
        assert post_info["disable_duet"] is True
        assert post_info["disable_stitch"] is False
        assert request.duet_off is False

    def test_privacy_downgraded(self, api, connector, restricted_creator):
        """Test that a disallowed privacy level becomes SELF_ONLY."""
        api.add(CREATOR_PATH, restricted_creator)
        api.add(VIDEO_INIT_PATH, init_response())
        request = VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t", privacy_level=PrivacyLevel.PUBLIC)

        connector.publish_replacing_invalid_values(request)

        post_info = api.json_body(api.calls(VIDEO_INIT_PATH)[0])["post_info"]
        assert post_info["privacy_level"] == "SELF_ONLY"

    def test_comments_forced_off(self, api, connector, creator_payload):
        """Test that comments are disabled when the creator requires it."""
        creator_payload["data"]["comment_disabled"] = True
        api.add(CREATOR_PATH, creator_payload)
        api.add(CONTENT_INIT_PATH, init_response())

        connector.publish_replacing_invalid_values(ImagesFromUrls(urls=["https://cdn.example.com/1.jpg"], title="t"))

        post_info = api.json_body(api.calls(CONTENT_INIT_PATH)[0])["post_info"]
        assert post_info["disable_comment"] is True


class TestUncheckedPublish:
    """Tests for publish without capability checks."""

    def test_no_creator_query(self, api, connector):
        """Test that creator info is not requested."""
        api.add(VIDEO_INIT_PATH, init_response())
        request = VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t", privacy_level=PrivacyLevel.PUBLIC)

        info = connector.publish_without_checks(request)

        assert info.success is True
        assert api.calls(CREATOR_PATH) == []
        assert api.json_body(api.calls(VIDEO_INIT_PATH)[0])["post_info"]["privacy_level"] == "PUBLIC_TO_EVERYONE"


class TestFileUpload:
    """Tests for single-chunk file uploads."""

    def test_upload(self, api, connector, creator_payload, video_file):
        """Test the PUT carries the whole file with matching range headers."""
        api.add(CREATOR_PATH, creator_payload)
        api.add(VIDEO_INIT_PATH, init_response("v_inbox_file~v2.1", UPLOAD_URL))
        api.add(UPLOAD_PATH, httpx.Response(201))
        request = VideoFromFile(path=video_file, title="Local")
        size = request.size

        attempt = connector.start_publish(request)

        assert attempt.state == PublishState.POLLING
        assert attempt.history == [
            PublishState.NOT_STARTED,
            PublishState.CAPABILITY_CHECKED,
            PublishState.SESSION_INITIATED,
            PublishState.UPLOADING,
            PublishState.POLLING,
        ]

        put = api.calls(UPLOAD_PATH)[0]
        assert put.method == "PUT"
        assert put.headers["Content-Range"] == f"bytes 0-{size - 1}/{size}"
        assert put.headers["Content-Length"] == str(size)
        assert put.headers["Content-Type"] == "video/mp4"
        assert put.content == video_file.read_bytes()
        assert "Authorization" not in put.headers

    def test_upload_streams_file(self, api, connector, video_file):
        """Test that the file is streamed with its length, not read whole."""
        api.add(VIDEO_INIT_PATH, init_response("p", UPLOAD_URL))
        api.add(UPLOAD_PATH, httpx.Response(201))
        request = VideoFromFile(path=video_file, title="t")

        with patch.object(Path, "read_bytes", side_effect=AssertionError("file read into memory")):
            connector.publish_without_checks(request)

        put = api.calls(UPLOAD_PATH)[0]
        assert put.headers["Content-Length"] == str(request.size)
        assert "Transfer-Encoding" not in put.headers
        assert put.content == video_file.read_bytes()

    def test_missing_upload_url(self, api, connector, video_file):
        """Test that an init without upload_url fails the upload session."""
        api.add(
            VIDEO_INIT_PATH,
            {"data": {}, "error": {"code": "spam_risk_too_many_pending_share", "message": "Too many pending"}},
        )

        with pytest.raises(UploadSessionError) as exc_info:
            connector.publish_without_checks(VideoFromFile(path=video_file, title="t"))

        assert exc_info.value.code == "spam_risk_too_many_pending_share"
        assert "Too many pending" in str(exc_info.value)
        assert api.calls(UPLOAD_PATH) == []

    def test_upload_rejected(self, api, connector, video_file):
        """Test that a failed PUT raises UploadSessionError."""
        api.add(VIDEO_INIT_PATH, init_response("p", UPLOAD_URL))
        api.add(UPLOAD_PATH, httpx.Response(500, text="Internal Error"))

        with pytest.raises(UploadSessionError, match="500"):
            connector.publish_without_checks(VideoFromFile(path=video_file, title="t"))


class TestPolling:
    """Tests for status checks and polling."""

    def test_check_status_request(self, api, connector):
        """Test the status query body."""
        api.add(STATUS_PATH, status_response("PROCESSING_DOWNLOAD"))

        status = connector.check_publish_status("v_pub_url~v2.1")

        assert status.status == "PROCESSING_DOWNLOAD"
        assert api.json_body(api.calls(STATUS_PATH)[0]) == {"publish_id": "v_pub_url~v2.1"}

    def test_three_statuses_three_queries(self, api, connector):
        """Test that polling stops at the first terminal status."""
        api.add(
            STATUS_PATH,
            status_response("PROCESSING_DOWNLOAD"),
            status_response("PROCESSING_UPLOAD"),
            status_response("PUBLISH_COMPLETE", publicaly_available_post_id=["7301"]),
        )

        status = connector.wait_until_published("p1")

        assert status.is_complete
        assert status.public_post_id == "7301"
        assert len(api.calls(STATUS_PATH)) == 3

    def test_stops_on_failed(self, api, connector):
        """Test that FAILED ends polling."""
        api.add(STATUS_PATH, status_response("FAILED", fail_reason="video_pull_failed"), status_response("PUBLISH_COMPLETE"))

        status = connector.wait_until_published("p1")

        assert status.status == "FAILED"
        assert len(api.calls(STATUS_PATH)) == 1

    def test_stops_on_api_error(self, api, connector):
        """Test that an API error code ends polling."""
        api.add(STATUS_PATH, {"error": {"code": "rate_limit_exceeded", "message": "slow down"}})

        status = connector.wait_until_published("p1")

        assert status.success is False
        assert status.error_code == "rate_limit_exceeded"
        assert len(api.calls(STATUS_PATH)) == 1

    def test_bounded(self, api, connector):
        """Test that polling gives up after max_attempts queries."""
        api.add(STATUS_PATH, status_response("PROCESSING_UPLOAD"))

        status = connector.wait_until_published("p1", max_attempts=4)

        assert status.status == "PROCESSING_UPLOAD"
        assert not status.is_terminal
        assert len(api.calls(STATUS_PATH)) == 4

    def test_sleeps_between_queries(self, api, connector):
        """Test the interval is slept between queries but not after the last."""
        api.add(STATUS_PATH, status_response("PROCESSING_UPLOAD"))

        with patch("tiktok_login_kit.publishing.coordinator.time.sleep") as mock_sleep:
            connector.wait_until_published("p1", max_attempts=3, interval=2.5)

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(2.5)

    def test_transport_failure(self, api, connector):
        """Test that a lost status query raises TransportError."""
        api.add(STATUS_PATH, httpx.ConnectError("connection reset"))

        with pytest.raises(TransportError):
            connector.wait_until_published("p1")

    def test_wait_for_attempt(self, api, connector, creator_payload):
        """Test the attempt reaches COMPLETE after polling."""
        api.add(CREATOR_PATH, creator_payload)
        api.add(VIDEO_INIT_PATH, init_response("p1"))
        api.add(STATUS_PATH, status_response("PROCESSING_DOWNLOAD"), status_response("PUBLISH_COMPLETE"))

        attempt = connector.start_publish(
            VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t"),
            PublishMode.LENIENT,
        )
        status = connector.publisher.wait_for_attempt(attempt)

        assert status.is_complete
        assert attempt.state == PublishState.COMPLETE
        assert attempt.history[-2:] == [PublishState.POLLING, PublishState.COMPLETE]

    def test_wait_for_failed_attempt(self, api, connector):
        """Test a FAILED status marks the attempt failed."""
        api.add(VIDEO_INIT_PATH, init_response("p1"))
        api.add(STATUS_PATH, status_response("FAILED", fail_reason="spam"))

        attempt = connector.start_publish(
            VideoFromUrl(url="https://cdn.example.com/clip.mp4", title="t"),
            PublishMode.UNCHECKED,
        )
        connector.publisher.wait_for_attempt(attempt)

        assert attempt.state == PublishState.FAILED
        assert attempt.status.error_message == "spam"

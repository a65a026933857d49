import io
import json
from unittest.mock import patch
from urllib.parse import parse_qs, unquote, urlsplit

import httpx
import pytest

from slave_bridge.core.exceptions import (
    EncodingError,
    RemoteOperationError,
    ResponseFormatError,
    SigningError,
    TransportError,
    UnsupportedOperationError,
)
from slave_bridge.core.security.hmac_auth import build_request_sign_string, sign_request
from slave_bridge.schemas.remote_schemas import UploadPolicy
from slave_bridge.utils.url_builder import encode_source_path

from .conftest import SITE_URL, SLAVE_SERVER, json_response


def _split_authorization(value: str):
    assert value.startswith("Bearer ")
    signature = value[len("Bearer "):]
    return signature, int(signature.rsplit(":", 1)[1])


# ==============================================================================
#                                Delete
# ==============================================================================

def test_delete_success_returns_empty_list(make_handler):
    handler = make_handler(lambda request: json_response({"code": 0}))
    result = handler.delete(["a.txt", "b.txt"])
    assert result.unfinished == []
    assert result.error is None
    assert result.ok


def test_delete_sends_signed_json_request(make_handler, auth):
    captured = {}

    def slave(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return json_response({"code": 0})

    handler = make_handler(slave)
    handler.delete(["a.txt", "b.txt"])

    request = captured["request"]
    assert request.method == "POST"
    assert str(request.url) == f"{SLAVE_SERVER}/api/v3/slave/delete"
    assert json.loads(request.content) == {"files": ["a.txt", "b.txt"]}

    signature, expires = _split_authorization(request.headers["Authorization"])
    expected = auth.sign(
        build_request_sign_string("POST", "/api/v3/slave/delete", request.headers, request.content),
        expires,
    )
    assert signature == expected


def test_delete_signs_with_api_timeout(make_handler):
    captured = {}

    def slave(request):
        captured["authorization"] = request.headers["Authorization"]
        return json_response({"code": 0})

    with patch("slave_bridge.core.security.hmac_auth.time.time", return_value=1000):
        make_handler(slave, api_timeout=30).delete(["a.txt"])
    assert captured["authorization"].endswith(":1030")


def test_delete_api_timeout_defaults_to_60(make_handler):
    assert make_handler().api_timeout == 60


def test_delete_partial_failure_reports_remaining_files(make_handler):
    handler = make_handler(lambda request: json_response({
        "code": 1,
        "data": json.dumps({"files": ["b.txt"]}),
        "error": "disk busy",
    }))
    result = handler.delete(["a.txt", "b.txt"])
    assert result.unfinished == ["b.txt"]
    assert isinstance(result.error, RemoteOperationError)
    assert result.error.message == "disk busy"
    assert result.error.remote_code == 1


def test_delete_accepts_object_data_payload(make_handler):
    handler = make_handler(lambda request: json_response({
        "code": 1,
        "data": {"files": ["a.txt"]},
        "error": "permission denied",
    }))
    result = handler.delete(["a.txt", "b.txt"])
    assert result.unfinished == ["a.txt"]
    assert result.error.message == "permission denied"


@pytest.mark.parametrize("data", ["not json", "{}", '{"files": "b.txt"}', 123, None, ["b.txt"]])
def test_delete_undecodable_data_returns_full_list(make_handler, data):
    handler = make_handler(lambda request: json_response({"code": 1, "data": data, "error": "x"}))
    result = handler.delete(["a.txt", "b.txt"])
    assert result.unfinished == ["a.txt", "b.txt"]
    assert isinstance(result.error, ResponseFormatError)


def test_delete_unparseable_envelope_returns_full_list(make_handler):
    handler = make_handler(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    result = handler.delete(["a.txt"])
    assert result.unfinished == ["a.txt"]
    assert isinstance(result.error, ResponseFormatError)


def test_delete_http_error_returns_full_list(make_handler):
    handler = make_handler(lambda request: httpx.Response(500, content=b""))
    result = handler.delete(["a.txt", "b.txt"])
    assert result.unfinished == ["a.txt", "b.txt"]
    assert isinstance(result.error, TransportError)
    assert result.error.remote_status == 500


def test_delete_connection_error_returns_full_list(make_handler):
    def slave(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = make_handler(slave).delete(["a.txt"])
    assert result.unfinished == ["a.txt"]
    assert isinstance(result.error, TransportError)
    assert result.error.remote_status is None


# ==============================================================================
#                                Put
# ==============================================================================

@pytest.mark.parametrize("file, dst, size", [
    (io.BytesIO(b"data"), "/a.txt", 4),
    (io.BytesIO(b""), "", 0),
    (None, None, -1),
])
def test_put_is_always_unsupported(make_handler, file, dst, size):
    with pytest.raises(UnsupportedOperationError):
        make_handler().put(file, dst, size)


# ==============================================================================
#                                Thumb
# ==============================================================================

def test_thumb_returns_signed_redirect(make_handler, auth):
    calls = []
    handler = make_handler(lambda request: calls.append(request) or json_response({"code": 0}))

    with patch("slave_bridge.core.security.hmac_auth.time.time", return_value=1000):
        result = handler.thumb("/pics/cat.jpg")

    assert result.redirect is True
    parts = urlsplit(result.url)
    assert f"{parts.scheme}://{parts.netloc}" == SLAVE_SERVER
    assert parts.path == "/api/v3/slave/thumb/" + encode_source_path("/pics/cat.jpg")
    assert parse_qs(parts.query)["sign"] == [auth.sign(parts.path, 1060)]
    # 缩略图只生成地址，不请求从机
    assert calls == []


# ==============================================================================
#                                Source
# ==============================================================================

def test_source_builds_absolute_signed_url(make_handler, auth):
    url = make_handler().source("/docs/a.txt", ttl=0, is_download=True, speed=256, file_name="a.txt")
    parts = urlsplit(url)

    assert f"{parts.scheme}://{parts.netloc}" == SLAVE_SERVER
    assert parts.path == f"/api/v3/slave/download/256/{encode_source_path('/docs/a.txt')}/a.txt"
    assert parse_qs(parts.query)["sign"] == [auth.sign(parts.path, 0)]


def test_source_download_flag_only_changes_controller(make_handler):
    handler = make_handler()
    download = urlsplit(handler.source("/a.txt", 0, True, 10, "a.txt")).path.split("/")
    preview = urlsplit(handler.source("/a.txt", 0, False, 10, "a.txt")).path.split("/")

    assert download[:4] == ["", "api", "v3", "slave"]
    assert download[4] == "download"
    assert preview[4] == "source"
    assert download[5:] == preview[5:] == ["10", encode_source_path("/a.txt"), "a.txt"]


def test_source_defaults_file_name(make_handler):
    path = urlsplit(make_handler().source("/a.txt")).path
    assert path.endswith("/file")
    assert "/api/v3/slave/source/0/" in path


def test_source_signs_unquoted_file_name(make_handler, auth):
    url = make_handler().source("/a.txt", file_name="报告 1.txt")
    parts = urlsplit(url)
    assert parse_qs(parts.query)["sign"] == [auth.sign(unquote(parts.path), 0)]
    assert unquote(parts.path).endswith("/报告 1.txt")


def test_source_wraps_signing_failure(make_handler):
    with patch("slave_bridge.infra.storage.remote_handler.sign_uri", side_effect=EncodingError("bad")):
        with pytest.raises(SigningError):
            make_handler().source("/a.txt")


def test_source_rejects_unparseable_server(make_handler, policy):
    handler = make_handler()
    handler.policy = policy.model_copy(update={"server": "not a url"})
    with pytest.raises(EncodingError):
        handler.source("/a.txt")


# ==============================================================================
#                                Get
# ==============================================================================

def test_get_streams_body_from_download_url(make_handler, auth):
    captured = {}

    def slave(request):
        captured["url"] = request.url
        return httpx.Response(200, content=b"hello world", headers={"Content-Type": "text/plain"})

    response = make_handler(slave).get("/a.txt", speed_limit=64, file_name="a.txt")
    try:
        assert response.read() == b"hello world"
    finally:
        response.close()

    path = captured["url"].path
    assert path == f"/api/v3/slave/download/64/{encode_source_path('/a.txt')}/a.txt"
    signature = captured["url"].params["sign"]
    assert signature == auth.sign(path, int(signature.rsplit(":", 1)[1]))


def test_get_non_200_raises_transport_error(make_handler):
    handler = make_handler(lambda request: httpx.Response(404, content=b"not found"))
    with pytest.raises(TransportError) as exc_info:
        handler.get("/missing.txt")
    assert exc_info.value.remote_status == 404


def test_get_connection_error_raises_transport_error(make_handler):
    def slave(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError):
        make_handler(slave).get("/a.txt")


# ==============================================================================
#                                Token
# ==============================================================================

def test_token_embeds_policy_and_callback(make_handler, policy):
    credential = make_handler().token(3600, "session-1")
    upload_policy = UploadPolicy.decode(credential.policy)

    assert upload_policy.callback_url == f"{SITE_URL}/api/v3/callback/remote/session-1"
    assert upload_policy.save_path == policy.dir_name_rule
    assert upload_policy.file_name == policy.file_name_rule
    assert upload_policy.auto_rename is True
    assert upload_policy.max_size == policy.max_size
    assert upload_policy.allowed_extension == ["jpg", "png"]


def test_token_different_keys_have_different_callbacks(make_handler):
    handler = make_handler()
    first = UploadPolicy.decode(handler.token(60, "key-a").policy)
    second = UploadPolicy.decode(handler.token(60, "key-b").policy)
    assert first.callback_url != second.callback_url
    assert first.callback_url.endswith("/key-a")
    assert second.callback_url.endswith("/key-b")


def test_token_signature_covers_policy_header(make_handler, auth):
    credential = make_handler().token(0, "session-1")
    signature, expires = _split_authorization(credential.token)

    assert expires == 0
    expected = auth.sign(
        build_request_sign_string("POST", "/api/v3/slave/upload", {"X-Policy": credential.policy}, b""),
        0,
    )
    assert signature == expected


def test_token_matches_actual_upload_request(make_handler, auth):
    credential = make_handler().token(0, "session-1")

    upload = httpx.Request(
        "POST",
        f"{SLAVE_SERVER}/api/v3/slave/upload",
        headers={"X-Policy": credential.policy},
        content=b"file bytes",
    )
    sign_request(auth, upload, 0)
    assert upload.headers["Authorization"] == credential.token


def test_token_does_not_contact_slave(make_handler):
    calls = []
    make_handler(lambda request: calls.append(request) or json_response({"code": 0})).token(60, "k")
    assert calls == []


def test_token_policy_encoding_failure(make_handler):
    with patch.object(UploadPolicy, "encode", side_effect=EncodingError("boom")):
        with pytest.raises(EncodingError):
            make_handler().token(60, "k")


def test_token_missing_authorization_raises_signing_error(make_handler):
    with patch("slave_bridge.infra.storage.remote_handler.sign_request", side_effect=lambda auth, req, ttl: req):
        with pytest.raises(SigningError):
            make_handler().token(60, "k")

# slave_bridge/core/security/hmac_auth.py

import base64
import hashlib
import hmac
import json
import time
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Union
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

import httpx

from slave_bridge.core.exceptions import EncodingError, SigningError
from slave_bridge.core.logger import logger
from slave_bridge.enums.slave_enums import POLICY_HEADER

SIGN_QUERY_KEY = "sign"
SIGNED_HEADER_PREFIX = "x-"


class AuthInterface(ABC):
    """签名能力的抽象。只负责签名，校验是从机的职责。"""

    @abstractmethod
    def sign(self, body: str, expires: int) -> str:
        """对 body 与过期时间戳签名，返回 '<signature>:<expires>'。"""
        pass


class HMACAuth(AuthInterface):
    """
    基于 HMAC-SHA256 的签名实现。

    无状态，可在多个调用间复用；相同的 (密钥, body, expires) 总是得到相同的签名，
    因此重试是幂等的。
    """

    def __init__(self, secret_key: Union[str, bytes]):
        if not secret_key:
            raise SigningError("签名密钥不能为空")
        self._secret = secret_key.encode("utf-8") if isinstance(secret_key, str) else bytes(secret_key)

    def sign(self, body: str, expires: int) -> str:
        try:
            message = f"{body}:{int(expires)}".encode("utf-8", errors="surrogateescape")
        except UnicodeEncodeError as e:
            raise SigningError(f"无法编码签名内容: {e}") from e
        digest = hmac.new(self._secret, message, hashlib.sha256).digest()
        return f"{base64.urlsafe_b64encode(digest).decode('ascii')}:{int(expires)}"

    def __repr__(self):
        return "HMACAuth(secret_key=***)"


def expires_at(ttl: int, now: Optional[int] = None) -> int:
    """
    计算过期时间戳。
    ttl <= 0 时返回 0，表示签名永不过期（仍然会签名）。
    """
    if ttl is None or ttl <= 0:
        return 0
    now = int(time.time()) if now is None else int(now)
    return now + int(ttl)


def sign_uri(auth: AuthInterface, uri: str, ttl: int, now: Optional[int] = None) -> str:
    """
    对 URI 的路径签名，并把签名放到查询参数 sign 中。
    原有的 sign 参数会被替换，其它查询参数保持不变。
    """
    try:
        parts = urlsplit(uri)
        path = unquote(parts.path, errors="surrogateescape")
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != SIGN_QUERY_KEY]
    except (ValueError, TypeError) as e:
        raise EncodingError(f"无法解析待签名地址: {e}") from e
    if not path:
        raise EncodingError(f"待签名地址缺少路径: {uri!r}")

    signature = auth.sign(path, expires_at(ttl, now))
    query.append((SIGN_QUERY_KEY, signature))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def build_request_sign_string(
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: Union[str, bytes] = b"",
) -> str:
    """
    完整请求的待签名字符串。

    由请求方法、路径、所有 X- 开头的请求头（名称小写、按字典序排序）以及请求正文
    组成的紧凑 JSON。
    """
    signed_headers = sorted(
        f"{name.lower()}={value}"
        for name, value in headers.items()
        if name.lower().startswith(SIGNED_HEADER_PREFIX)
    )
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="surrogateescape")
    return json.dumps(
        {
            "method": method.upper(),
            "path": path,
            "header": "&".join(signed_headers),
            "body": body,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )


def sign_request(auth: AuthInterface, request: httpx.Request, ttl: int, now: Optional[int] = None) -> httpx.Request:
    """
    对 httpx.Request 整体签名，签名写入 Authorization 头。
    携带 X-Policy 头的上传请求按空正文签名。
    """
    if POLICY_HEADER in request.headers:
        body = b""
    else:
        try:
            body = request.read()
        except httpx.StreamError as e:
            raise SigningError(f"无法读取请求正文: {e}") from e

    content = build_request_sign_string(request.method, request.url.path, request.headers, body)
    signature = auth.sign(content, expires_at(ttl, now))
    request.headers["Authorization"] = f"Bearer {signature}"
    logger.debug(f"[Signer] Signed {request.method} {request.url.path} (ttl={ttl})")
    return request

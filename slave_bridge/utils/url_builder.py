# slave_bridge/utils/url_builder.py

import base64
import binascii
from typing import Union
from urllib.parse import quote, urljoin, urlsplit

from slave_bridge.core.exceptions import EncodingError
from slave_bridge.enums.slave_enums import CALLBACK_REMOTE_PREFIX, SlaveEndpoint


def encode_source_path(path: Union[str, bytes]) -> str:
    """
    将逻辑文件路径编码为可直接放入 URL 路径段的令牌。

    使用无填充的 URL-safe Base64，令牌中只会出现 [A-Za-z0-9_-]，
    不需要再做任何转义。str 以 surrogateescape 方式编码，
    因此从非 UTF-8 字节解码得来的路径也能原样还原。
    """
    if isinstance(path, str):
        try:
            raw = path.encode("utf-8", errors="surrogateescape")
        except UnicodeEncodeError as e:
            raise EncodingError(f"无法编码文件路径: {e}") from e
    else:
        raw = bytes(path)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def decode_source_path(token: str, as_bytes: bool = False) -> Union[str, bytes]:
    """encode_source_path 的逆操作。"""
    padding = "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode((token + padding).encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"无法解码文件路径: {e}") from e
    if as_bytes:
        return raw
    return raw.decode("utf-8", errors="surrogateescape")


def _validate_base_url(base_url: str, what: str) -> str:
    parts = urlsplit(base_url or "")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise EncodingError(f"无法解析{what}: {base_url!r}")
    return base_url


def resolve_server_url(server: str, uri: str) -> str:
    """将以 / 开头的 uri 解析到从机服务端地址上，得到绝对地址。"""
    _validate_base_url(server, "远程服务端地址")
    return urljoin(server, uri)


def build_api_url(server: str, endpoint: SlaveEndpoint) -> str:
    return resolve_server_url(server, endpoint.value)


def build_source_uri(endpoint: SlaveEndpoint, speed: int, path: Union[str, bytes], file_name: str) -> str:
    """
    组合 {controller}/{speed}/{encodedPath}/{fileName}。

    从机按位置解析各字段，顺序不可改变。文件名作为单个路径段转义，
    其中的 "/" 同样会被转义。
    """
    return "{}/{}/{}/{}".format(
        endpoint.value,
        int(speed),
        encode_source_path(path),
        quote(file_name, safe=""),
    )


def build_callback_url(site_url: str, key: str) -> str:
    """生成某次上传会话专属的回调地址。"""
    _validate_base_url(site_url, "站点地址")
    return urljoin(site_url, CALLBACK_REMOTE_PREFIX + quote(key, safe=""))

# slave_bridge/infra/http/request_client.py
from typing import Dict, Optional, Union

import httpx

from slave_bridge.config.config_schema import SlaveConfig
from slave_bridge.core.exceptions import TransportError
from slave_bridge.core.logger import logger
from slave_bridge.core.security.hmac_auth import AuthInterface, sign_request


class RequestClient:
    """
    发往从机的同步 HTTP 客户端。

    每次调用只做一次往返，不做重试；连接层错误与非预期状态码统一转换为 TransportError。
    stream=True 时返回未读取的响应，由调用方负责关闭。
    """

    def __init__(
            self,
            timeout: Optional[httpx.Timeout] = None,
            transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            timeout=timeout or httpx.Timeout(60.0, connect=10.0),
            transport=transport,
        )

    @classmethod
    def from_config(cls, slave_config: SlaveConfig, transport: Optional[httpx.BaseTransport] = None) -> "RequestClient":
        timeout = httpx.Timeout(slave_config.read_timeout, connect=slave_config.connect_timeout)
        return cls(timeout=timeout, transport=transport)

    def request(
            self,
            method: str,
            url: str,
            content: Optional[Union[str, bytes]] = None,
            headers: Optional[Dict[str, str]] = None,
            credential: Optional[AuthInterface] = None,
            sign_ttl: int = 0,
            stream: bool = False,
            expected_status: Optional[int] = 200,
    ) -> httpx.Response:
        """
        构建、（可选）签名并发送请求。

        :param credential: 提供时对整个请求签名，签名有效期为 sign_ttl 秒
        :param expected_status: 期望的 HTTP 状态码，None 表示不检查
        """
        request = self._client.build_request(method, url, content=content, headers=headers)
        if credential is not None:
            sign_request(credential, request, sign_ttl)

        # 查询参数中可能带有签名，不写入日志
        logger.debug(f"[Request Client] {method} {request.url.host}{request.url.path}")
        try:
            response = self._client.send(request, stream=stream)
        except httpx.HTTPError as e:
            logger.error(f"[Request Client] {method} {request.url.path} failed: {e!r}")
            raise TransportError(f"无法连接远程从机: {e}") from e

        return self.check_http_response(response, expected_status)

    @staticmethod
    def check_http_response(response: httpx.Response, expected_status: Optional[int] = 200) -> httpx.Response:
        """状态码不符合预期时关闭响应并抛出 TransportError。"""
        if expected_status is None or response.status_code == expected_status:
            return response
        response.close()
        logger.warning(
            f"[Request Client] Unexpected status {response.status_code} from {response.request.url.path}"
        )
        raise TransportError(
            f"服务器返回非预期状态码: {response.status_code}",
            remote_status=response.status_code,
        )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

from typing import Any, BinaryIO, List, Optional

import httpx
from pydantic import ValidationError

from slave_bridge.config.config_schema import PolicyConfig
from slave_bridge.core.exceptions import (
    BaseBusinessException,
    RemoteOperationError,
    ResponseFormatError,
    SigningError,
    UnsupportedOperationError,
)
from slave_bridge.core.logger import logger
from slave_bridge.core.security.hmac_auth import AuthInterface, sign_request, sign_uri
from slave_bridge.enums.slave_enums import POLICY_HEADER, SlaveEndpoint
from slave_bridge.infra.http.request_client import RequestClient
from slave_bridge.infra.storage.handler_interface import StorageHandlerInterface
from slave_bridge.schemas.remote_schemas import (
    ContentResponse,
    DeleteBatchResult,
    RemoteDeleteRequest,
    SlaveResponse,
    UploadCredential,
    UploadPolicy,
)
from slave_bridge.utils.url_builder import (
    build_api_url,
    build_callback_url,
    build_source_uri,
    encode_source_path,
    resolve_server_url,
)

DEFAULT_API_TIMEOUT = 60
DEFAULT_FILE_NAME = "file"


class RemoteHandler(StorageHandlerInterface):
    """
    远程存储策略适配器。

    前端本身不保存文件，所有操作都以带时效签名的 HTTP 请求委托给从机完成。
    每个操作都是 构建 → 签名 → 发送 → 解析 的单次往返，本层不做重试。
    policy 与 auth 只读，同一个实例可被并发调用。
    """

    def __init__(
            self,
            policy: PolicyConfig,
            client: RequestClient,
            auth: AuthInterface,
            site_url: str,
            api_timeout: Optional[int] = None,
    ):
        self.policy = policy
        self.client = client
        self.auth = auth
        self.site_url = site_url
        # slave_api_timeout，删除 / 缩略图 / 下载共用
        self.api_timeout = api_timeout if api_timeout is not None else DEFAULT_API_TIMEOUT

    def get(self, path: str, speed_limit: int = 0, file_name: Optional[str] = None) -> httpx.Response:
        """
        获取文件内容。

        返回的响应尚未读取，调用方必须在所有退出路径上调用 close()。
        非 200 状态码时响应已被关闭，并抛出 TransportError。
        """
        download_url = self.source(
            path,
            ttl=self.api_timeout,
            is_download=True,
            speed=speed_limit,
            file_name=file_name,
        )
        logger.info(f"[Remote Handler] Fetching '{path}' from policy '{self.policy.name}'")
        return self.client.request("GET", download_url, stream=True)

    def put(self, file: BinaryIO, dst: str, size: int) -> None:
        # 上传必须通过 token() 签发的凭证直传从机
        raise UnsupportedOperationError()

    def delete(self, files: List[str]) -> DeleteBatchResult:
        """
        删除一个或多个文件。

        从机上的批量删除可能只执行了一部分，因此结果按文件逐个报告，
        本方法不会因为删除失败而抛出异常。
        """
        files = list(files)
        logger.info(f"[Remote Handler] Deleting {len(files)} file(s) on policy '{self.policy.name}'")

        try:
            body = RemoteDeleteRequest(files=files).model_dump_json()
            response = self.client.request(
                "POST",
                build_api_url(self.policy.server, SlaveEndpoint.DELETE),
                content=body,
                headers={"Content-Type": "application/json"},
                credential=self.auth,
                sign_ttl=self.api_timeout,
            )
        except BaseBusinessException as e:
            logger.error(f"[Remote Handler] Delete request failed: {e}")
            return DeleteBatchResult(unfinished=files, error=e)

        try:
            result = SlaveResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error(f"[Remote Handler] Unparseable delete response: {e}")
            return DeleteBatchResult(unfinished=files, error=ResponseFormatError())

        if result.code == 0:
            return DeleteBatchResult()

        failed = self._decode_failed_files(result.data)
        if failed is None:
            logger.warning(f"[Remote Handler] Delete failed with code {result.code} and unrecognized data")
            return DeleteBatchResult(unfinished=files, error=ResponseFormatError())

        logger.warning(
            f"[Remote Handler] {len(failed.files)} of {len(files)} file(s) not deleted: {result.error}"
        )
        return DeleteBatchResult(
            unfinished=failed.files,
            error=RemoteOperationError(result.error or result.msg or None, remote_code=result.code),
        )

    @staticmethod
    def _decode_failed_files(data: Any) -> Optional[RemoteDeleteRequest]:
        """
        解析失败响应中的二次负载。
        其结构必须与删除请求正文一致，即 {"files": [...]}；从机通常以 JSON 字符串形式返回。
        """
        try:
            if isinstance(data, (str, bytes)):
                return RemoteDeleteRequest.model_validate_json(data)
            if isinstance(data, dict):
                return RemoteDeleteRequest.model_validate(data)
        except ValidationError:
            return None
        return None

    def thumb(self, path: str) -> ContentResponse:
        """生成签名的缩略图地址，由 HTTP 层重定向，本方法不获取任何内容。"""
        thumb_url = build_api_url(self.policy.server, SlaveEndpoint.THUMB) + "/" + encode_source_path(path)
        signed_thumb_url = sign_uri(self.auth, thumb_url, self.api_timeout)
        return ContentResponse(redirect=True, url=signed_thumb_url)

    def source(
            self,
            path: str,
            ttl: int = 0,
            is_download: bool = False,
            speed: int = 0,
            file_name: Optional[str] = None,
    ) -> str:
        """
        获取外链地址。

        :param ttl: 签名有效期（秒），<= 0 表示永不过期
        :param is_download: True 使用 download 控制器，否则使用 source（预览）控制器
        :param speed: 单次请求的限速，0 表示不限速
        :param file_name: 展示用的文件名，缺省为 "file"
        """
        endpoint = SlaveEndpoint.DOWNLOAD if is_download else SlaveEndpoint.SOURCE
        source_uri = build_source_uri(endpoint, speed, path, file_name or DEFAULT_FILE_NAME)

        try:
            signed_uri = sign_uri(self.auth, source_uri, ttl)
        except BaseBusinessException as e:
            raise SigningError("无法对URL进行签名") from e

        return resolve_server_url(self.policy.server, signed_uri)

    def token(self, ttl: int, key: str) -> UploadCredential:
        """
        签发上传凭证。

        上传策略编码后放入 X-Policy 头，对一个虚拟的上传请求签名，
        取出 Authorization 头作为交给上传方的 Bearer 令牌。
        """
        callback_url = build_callback_url(self.site_url, key)

        policy = UploadPolicy(
            save_path=self.policy.dir_name_rule,
            file_name=self.policy.file_name_rule,
            auto_rename=self.policy.auto_rename,
            max_size=self.policy.max_size,
            allowed_extension=list(self.policy.allowed_extensions),
            callback_url=callback_url,
        )
        policy_encoded = policy.encode()

        upload_request = httpx.Request(
            "POST",
            build_api_url(self.policy.server, SlaveEndpoint.UPLOAD),
            headers={POLICY_HEADER: policy_encoded},
        )
        sign_request(self.auth, upload_request, ttl)

        credential = upload_request.headers.get("Authorization")
        if not credential:
            raise SigningError("无法签名上传策略")

        logger.info(f"[Remote Handler] Issued upload credential for session '{key}' (ttl={ttl})")
        return UploadCredential(token=credential, policy=policy_encoded)

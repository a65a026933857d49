# slave_bridge/core/exceptions/remote_exceptions.py

from typing import Optional

from slave_bridge.core.exceptions.base_exception import BaseBusinessException
from slave_bridge.core.response_codes import ResponseCodeEnum


class UnsupportedOperationError(BaseBusinessException):
    """
    远程策略不允许经由前端直接上传，上传必须走 Token 凭证流程。
    """
    def __init__(self, message: Optional[str] = None):
        super().__init__(ResponseCodeEnum.UNSUPPORTED_OPERATION, message=message, status_code=400)


class EncodingError(BaseBusinessException):
    """路径、地址或上传策略无法编码时抛出。"""
    def __init__(self, message: Optional[str] = None):
        super().__init__(ResponseCodeEnum.ENCODING_ERROR, message=message, status_code=400)


class SigningError(BaseBusinessException):
    """签名构造失败，或签名后无法取得凭证。"""
    def __init__(self, message: Optional[str] = None):
        super().__init__(ResponseCodeEnum.SIGNING_ERROR, message=message, status_code=500)


class TransportError(BaseBusinessException):
    """
    与从机通信失败：连接错误、超时，或 HTTP 状态码不符合预期。

    :param remote_status: 从机返回的 HTTP 状态码，连接层失败时为 None
    """
    def __init__(self, message: Optional[str] = None, remote_status: Optional[int] = None):
        super().__init__(
            ResponseCodeEnum.TRANSPORT_ERROR,
            message=message,
            status_code=502,
            extra={"remote_status": remote_status} if remote_status is not None else None,
        )
        self.remote_status = remote_status


class ResponseFormatError(BaseBusinessException):
    """从机响应（或其嵌套的 data 负载）无法解析。"""
    def __init__(self, message: Optional[str] = None):
        super().__init__(ResponseCodeEnum.RESPONSE_FORMAT_ERROR, message=message, status_code=502)


class RemoteOperationError(BaseBusinessException):
    """从机返回了 code != 0 的业务错误，message 为从机给出的错误描述。"""
    def __init__(self, message: Optional[str] = None, remote_code: Optional[int] = None):
        super().__init__(
            ResponseCodeEnum.REMOTE_OPERATION_ERROR,
            message=message,
            extra={"remote_code": remote_code} if remote_code is not None else None,
        )
        self.remote_code = remote_code

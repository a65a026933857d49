# slave_bridge/core/exceptions/base_exception.py

from typing import Optional

from slave_bridge.core.response_codes import ResponseCodeEnum


class BaseBusinessException(Exception):
    def __init__(
            self,
            code_enum: Optional[ResponseCodeEnum] = None,
            code: Optional[int] = None,
            status_code: int = 200,
            message: Optional[str] = None,
            extra: Optional[dict] = None,
    ):
        code_enum = code_enum or ResponseCodeEnum.SERVER_ERROR
        self.code = code if code is not None else code_enum.code
        self.message = message or code_enum.message
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.code}] {self.message}"

    def to_dict(self):
        return {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "extra": self.extra,
        }


class NotFoundException(BaseBusinessException):
    """
    当请求的资源（例如未配置的存储策略）不存在时抛出。
    """
    def __init__(self, message: str = "资源不存在"):
        super().__init__(ResponseCodeEnum.NOT_FOUND, message=message, status_code=404)

# slave_bridge/schemas/remote_schemas.py
import base64
import binascii
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_core import PydanticSerializationError

from slave_bridge.core.exceptions import BaseBusinessException, EncodingError


class SlaveResponse(BaseModel):
    """
    从机返回的统一响应信封。
    code == 0 表示成功；失败时 data 可能是再次 JSON 编码过的字符串。
    """
    code: int
    data: Any = None
    msg: str = ""
    error: str = ""


class RemoteDeleteRequest(BaseModel):
    """
    删除请求正文。
    删除部分失败时，从机在 data 中返回同样结构的未删除文件列表。
    """
    files: List[str]


class UploadPolicy(BaseModel):
    """交给不可信上传方的上传策略，由从机在接收文件时校验。"""
    save_path: str
    file_name: str
    auto_rename: bool
    max_size: int
    allowed_extension: List[str] = Field(default_factory=list)
    callback_url: str

    def encode(self) -> str:
        """紧凑 JSON 后做标准 Base64 编码。"""
        try:
            raw = self.model_dump_json().encode("utf-8")
        except (PydanticSerializationError, UnicodeEncodeError) as e:
            raise EncodingError(f"无法编码上传策略: {e}") from e
        return base64.b64encode(raw).decode("ascii")

    @classmethod
    def decode(cls, encoded: str) -> "UploadPolicy":
        try:
            raw = base64.b64decode(encoded.encode("ascii"), validate=True)
            return cls.model_validate_json(raw)
        except (binascii.Error, ValueError, ValidationError) as e:
            raise EncodingError(f"无法解析上传策略: {e}") from e


class UploadCredential(BaseModel):
    """上传凭证：Bearer 令牌 + 编码后的上传策略。"""
    token: str = Field(..., description="完整的 Authorization 头，形如 'Bearer <sign>:<expires>'")
    policy: str = Field(..., description="Base64 编码的上传策略，上传时放入 X-Policy 头")


class ContentResponse(BaseModel):
    """
    不直接返回文件内容的响应，由 HTTP 层负责重定向。
    """
    redirect: bool = False
    url: str = ""


class DeleteBatchResult(BaseModel):
    """
    批量删除结果。
    unfinished 为请求删除但未删除的文件，error 描述失败原因；
    全部成功时 unfinished 为空且 error 为 None。
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    unfinished: List[str] = Field(default_factory=list)
    error: Optional[BaseBusinessException] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.unfinished

from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional

import httpx

from slave_bridge.schemas.remote_schemas import ContentResponse, DeleteBatchResult, UploadCredential


class StorageHandlerInterface(ABC):
    """
    存储策略适配器的统一接口。
    上层只与该接口交互，不关心文件实际存放在哪个节点。
    """

    @abstractmethod
    def get(self, path: str, speed_limit: int = 0, file_name: Optional[str] = None) -> httpx.Response:
        """
        获取文件内容。
        :return: 未读取的流式响应，调用方负责关闭。
        """
        pass

    @abstractmethod
    def put(self, file: BinaryIO, dst: str, size: int) -> None:
        """将文件流保存到指定位置。"""
        pass

    @abstractmethod
    def delete(self, files: List[str]) -> DeleteBatchResult:
        """删除一个或多个文件，返回未删除的文件及失败原因。"""
        pass

    @abstractmethod
    def thumb(self, path: str) -> ContentResponse:
        """获取缩略图。"""
        pass

    @abstractmethod
    def source(
            self,
            path: str,
            ttl: int = 0,
            is_download: bool = False,
            speed: int = 0,
            file_name: Optional[str] = None,
    ) -> str:
        """获取外链地址。"""
        pass

    @abstractmethod
    def token(self, ttl: int, key: str) -> UploadCredential:
        """获取上传策略和认证 Token。"""
        pass

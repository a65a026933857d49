from typing import Iterator, List, Optional

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse, StreamingResponse
from pydantic import BaseModel, Field

from slave_bridge.api.api_response import StandardResponse, response_success
from slave_bridge.infra.storage.handler_factory import HandlerFactory, get_handler_factory
from slave_bridge.infra.storage.remote_handler import RemoteHandler
from slave_bridge.schemas.remote_schemas import UploadCredential


# ==============================================================================
#                      请求 / 响应模型
# ==============================================================================

class DeleteFilesPayload(BaseModel):
    files: List[str] = Field(..., min_length=1, description="需要删除的文件路径列表。")


class DeleteFilesResult(BaseModel):
    unfinished: List[str] = Field(default_factory=list, description="未删除的文件。")
    error: Optional[str] = Field(None, description="失败原因，全部成功时为空。")


class SourceUrlResult(BaseModel):
    url: str


# ==============================================================================
#                            依赖
# ==============================================================================

def get_remote_handler(
    policy: str,
    factory: HandlerFactory = Depends(get_handler_factory),
) -> RemoteHandler:
    return factory.get_handler(policy)


def _iter_and_close(response: httpx.Response) -> Iterator[bytes]:
    # 无论传输是否完整，都要释放从机连接
    try:
        yield from response.iter_bytes()
    finally:
        response.close()


# ==============================================================================
#                            API 路由定义
# ==============================================================================

router = APIRouter()


@router.get("/{policy}/thumb", summary="获取缩略图（重定向到从机）")
def get_thumb(
    path: str = Query(..., description="文件在从机上的路径"),
    handler: RemoteHandler = Depends(get_remote_handler),
):
    result = handler.thumb(path)
    return RedirectResponse(result.url, status_code=302)


@router.get(
    "/{policy}/source",
    response_model=StandardResponse[SourceUrlResult],
    summary="获取外链地址"
)
def get_source_url(
    path: str = Query(...),
    ttl: int = Query(0, description="签名有效期（秒），0 表示永不过期"),
    download: bool = Query(False, description="是否作为下载地址"),
    speed: int = Query(0, ge=0, description="限速，0 表示不限"),
    name: Optional[str] = Query(None, description="展示文件名"),
    handler: RemoteHandler = Depends(get_remote_handler),
):
    url = handler.source(path, ttl=ttl, is_download=download, speed=speed, file_name=name)
    return response_success(data=SourceUrlResult(url=url))


@router.get("/{policy}/content", summary="经由前端中转获取文件内容")
def get_content(
    path: str = Query(...),
    speed: int = Query(0, ge=0),
    name: Optional[str] = Query(None),
    handler: RemoteHandler = Depends(get_remote_handler),
):
    remote = handler.get(path, speed_limit=speed, file_name=name)
    return StreamingResponse(
        _iter_and_close(remote),
        media_type=remote.headers.get("content-type", "application/octet-stream"),
    )


@router.post(
    "/{policy}/delete",
    response_model=StandardResponse[DeleteFilesResult],
    summary="批量删除文件"
)
def delete_files(
    payload: DeleteFilesPayload,
    handler: RemoteHandler = Depends(get_remote_handler),
):
    result = handler.delete(payload.files)
    data = DeleteFilesResult(
        unfinished=result.unfinished,
        error=result.error.message if result.error else None,
    )
    if result.error:
        return response_success(data=data, message="部分文件未能删除")
    return response_success(data=data)


@router.get(
    "/{policy}/credential",
    response_model=StandardResponse[UploadCredential],
    summary="签发上传凭证"
)
def get_upload_credential(
    key: str = Query(..., min_length=1, description="上传会话 key"),
    ttl: int = Query(3600, description="凭证有效期（秒）"),
    handler: RemoteHandler = Depends(get_remote_handler),
):
    credential = handler.token(ttl, key)
    return response_success(data=credential)

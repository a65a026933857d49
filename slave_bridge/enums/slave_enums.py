# slave_bridge/enums/slave_enums.py
from enum import Enum


class SlaveEndpoint(str, Enum):
    """
    从机 API 的固定子路径。
    操作种类是封闭集合，非法的操作名无法构造出来。
    """
    DELETE = "/api/v3/slave/delete"
    THUMB = "/api/v3/slave/thumb"
    DOWNLOAD = "/api/v3/slave/download"
    SOURCE = "/api/v3/slave/source"
    UPLOAD = "/api/v3/slave/upload"


# 上传完成后从机回调主机的路径前缀，后接上传会话 key
CALLBACK_REMOTE_PREFIX = "/api/v3/callback/remote/"

# 携带编码后上传策略的请求头
POLICY_HEADER = "X-Policy"

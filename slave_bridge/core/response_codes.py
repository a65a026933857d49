from enum import Enum


class ResponseCodeEnum(Enum):

    # === 通用响应码 ===
    SUCCESS = (0, "请求成功")
    VALIDATION_ERROR = (40001, "参数验证失败")
    NOT_FOUND = (40400, "资源不存在")
    SERVER_ERROR = (50000, "服务器内部错误")

    # === 远程存储策略 ===
    UNSUPPORTED_OPERATION = (40601, "远程策略不支持此上传方式")
    ENCODING_ERROR = (40701, "无法编码请求内容")
    SIGNING_ERROR = (40702, "无法对请求进行签名")
    TRANSPORT_ERROR = (50201, "无法连接远程从机")
    RESPONSE_FORMAT_ERROR = (50202, "未知的返回结果格式")
    REMOTE_OPERATION_ERROR = (50203, "远程从机操作失败")

    def __init__(self, code: int, message: str):
        self._code = code
        self._message = message

    @property
    def code(self):
        return self._code

    @property
    def message(self):
        return self._message

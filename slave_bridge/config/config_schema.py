from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_resolved(value: str) -> str:
    """拒绝空值以及未被环境变量替换的 ${VAR} 占位符。"""
    if not value or not value.strip():
        raise ValueError("不能为空")
    if "${" in value:
        raise ValueError(f"存在未解析的环境变量占位符: {value}")
    return value


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    api_prefix: str = "/api/v1"
    env: str = "dev"


class LoggingConfig(BaseModel):
    enable_file: bool = False
    log_dir: str = "logs"
    rotation: str = "1 week"
    retention: str = "1 month"


class SiteConfig(BaseModel):
    """站点自身的对外地址，用于生成从机上传完成后的回调地址。"""
    url: str = Field("http://localhost:8000", description="站点根地址, e.g., 'https://cloud.example.com'")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return ensure_resolved(value)


class SlaveConfig(BaseModel):
    """与从机通信的通用设置。"""

    api_timeout: int = Field(
        60,
        description="从机 API 请求签名的有效期（秒），删除与缩略图共用此设置",
    )
    connect_timeout: float = Field(10.0, description="连接超时时间 (秒)")
    read_timeout: float = Field(60.0, description="读取超时时间 (秒)")


class PolicyConfig(BaseModel):
    """
    单个远程存储策略的配置。
    一次操作期间不可变，由调用方持有，RemoteHandler 只读。
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="策略名称")
    server: str = Field(..., description="从机服务端地址, e.g., 'https://slave.example.com'")
    secret_key: str = Field(..., description="与从机共享的签名密钥")

    dir_name_rule: str = Field("uploads/{uid}/{path}", description="存储目录命名规则")
    file_name_rule: str = Field("{randomkey8}_{originname}", description="文件命名规则")
    auto_rename: bool = Field(True, description="是否自动重命名")
    max_size: int = Field(0, description="单文件最大尺寸（字节），0 表示不限制")
    allowed_extensions: List[str] = Field(default_factory=list, description="允许的扩展名，空列表表示不限制")

    @field_validator("server", "secret_key")
    @classmethod
    def check_resolved(cls, value: str) -> str:
        # 环境变量缺失时 YAML 会保留 ${SLAVE_SECRET} 原文
        return ensure_resolved(value)

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def split_extensions(cls, value):
        # 允许 YAML / 环境变量中写成 "jpg,png"
        if isinstance(value, str):
            return [ext.strip() for ext in value.split(",") if ext.strip()]
        return value


# ========================================================================================
#
#   所有配置模型都要写在APPconfig上方
#
# ========================================================================================
class AppConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    slave: SlaveConfig = Field(default_factory=SlaveConfig)
    policies: Dict[str, PolicyConfig] = Field(default_factory=dict)

    @field_validator("policies", mode="before")
    @classmethod
    def fill_policy_names(cls, value):
        # 字典 key 即策略名，YAML 中无需重复填写 name
        if isinstance(value, dict):
            return {
                key: {"name": key, **item} if isinstance(item, dict) else item
                for key, item in value.items()
            }
        return value

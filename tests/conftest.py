import json
import os
from typing import Callable

import httpx
import pytest

# 导入 slave_bridge.main 时会按默认 config.yaml 创建应用
os.environ.setdefault("SITE_URL", "https://cloud.example.com")
os.environ.setdefault("SLAVE_SERVER", "http://slave.local:5212")
os.environ.setdefault("SLAVE_SECRET", "slave-secret-key")

from slave_bridge.config.config_schema import AppConfig, PolicyConfig
from slave_bridge.core.security.hmac_auth import HMACAuth
from slave_bridge.infra.http.request_client import RequestClient
from slave_bridge.infra.storage.remote_handler import RemoteHandler

SECRET = "slave-secret-key"
SLAVE_SERVER = "http://slave.local:5212"
SITE_URL = "https://cloud.example.com"


def json_response(payload: dict, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))


@pytest.fixture
def policy() -> PolicyConfig:
    return PolicyConfig(
        name="remote_test",
        server=SLAVE_SERVER,
        secret_key=SECRET,
        dir_name_rule="uploads/{uid}/{path}",
        file_name_rule="{randomkey8}_{originname}",
        auto_rename=True,
        max_size=10 * 1024 * 1024,
        allowed_extensions=["jpg", "png"],
    )


@pytest.fixture
def auth() -> HMACAuth:
    return HMACAuth(SECRET)


@pytest.fixture
def make_handler(policy, auth) -> Callable[..., RemoteHandler]:
    """用 MockTransport 模拟从机，返回 RemoteHandler。"""
    clients = []

    def _make(slave: Callable[[httpx.Request], httpx.Response] = None, **kwargs) -> RemoteHandler:
        slave = slave or (lambda request: json_response({"code": 0}))
        client = RequestClient(transport=httpx.MockTransport(slave))
        clients.append(client)
        return RemoteHandler(
            policy=policy,
            client=client,
            auth=auth,
            site_url=SITE_URL,
            **kwargs,
        )

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def app_config(policy) -> AppConfig:
    return AppConfig(
        site={"url": SITE_URL},
        slave={"api_timeout": 60},
        policies={"remote_test": policy.model_dump()},
    )

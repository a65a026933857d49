import threading
from typing import Dict, Optional

import httpx

from slave_bridge.config import get_app_config
from slave_bridge.config.config_schema import AppConfig, PolicyConfig
from slave_bridge.core.exceptions import NotFoundException
from slave_bridge.core.logger import logger
from slave_bridge.core.security.hmac_auth import HMACAuth
from slave_bridge.infra.http.request_client import RequestClient
from slave_bridge.infra.storage.remote_handler import RemoteHandler


class HandlerFactory:
    """
    存储策略适配器工厂。

    根据配置文件中的 `policies` 部分，为每个远程存储策略创建一个 RemoteHandler，
    所有 Handler 共享同一个 RequestClient。
    业务层通过 `get_handler()` 传入策略名称即可获取对应的适配器。
    """

    def __init__(self, config: AppConfig, transport: Optional[httpx.BaseTransport] = None):
        logger.info("Initializing HandlerFactory...")
        self.config = config
        self.client = RequestClient.from_config(config.slave, transport=transport)
        self._handlers: Dict[str, RemoteHandler] = {}
        self._initialize_all_handlers()
        logger.info("HandlerFactory initialized successfully.")

    def _initialize_all_handlers(self):
        if not self.config.policies:
            logger.warning("No remote policies defined in configuration. HandlerFactory will be empty.")
            return

        for policy_name, policy in self.config.policies.items():
            try:
                self._handlers[policy_name] = self._build_handler(policy)
                logger.info(f"Successfully initialized handler for policy: '{policy_name}'.")
            except Exception as e:
                logger.exception(
                    f"Failed to initialize handler for policy '{policy_name}'. "
                    f"Error: {e}. This policy will be unavailable."
                )

    def _build_handler(self, policy: PolicyConfig) -> RemoteHandler:
        return RemoteHandler(
            policy=policy,
            client=self.client,
            auth=HMACAuth(policy.secret_key),
            site_url=self.config.site.url,
            api_timeout=self.config.slave.api_timeout,
        )

    def get_handler(self, policy_name: str) -> RemoteHandler:
        """
        通过策略名称获取适配器。

        Raises:
            NotFoundException: 策略不存在或初始化失败。
        """
        try:
            return self._handlers[policy_name]
        except KeyError:
            logger.error(f"Attempted to access non-existent or failed-to-initialize policy: '{policy_name}'")
            raise NotFoundException(f"存储策略 '{policy_name}' 不可用")

    def close(self):
        self.client.close()


_factory: Optional[HandlerFactory] = None
_lock = threading.Lock()


def get_handler_factory() -> HandlerFactory:
    global _factory
    if _factory is None:
        with _lock:
            # Double-checked locking
            if _factory is None:
                _factory = HandlerFactory(get_app_config())
    return _factory


def close_handler_factory():
    global _factory
    with _lock:
        if _factory is not None:
            _factory.close()
            _factory = None

from fastapi import APIRouter
from slave_bridge.api.routes import remote_file_router

api_router = APIRouter()

# 每个元素都是一个包含 router, prefix, 和 tags 的字典
routers_to_include = [
    {"router": remote_file_router.router, "prefix": "/file", "tags": ["file"]},
]

for route_config in routers_to_include:
    api_router.include_router(**route_config)

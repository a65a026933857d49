from typing import Any, Optional, Dict, TypeVar, Generic

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from slave_bridge.core.logger import logger
from slave_bridge.core.response_codes import ResponseCodeEnum

T = TypeVar('T')


# === Generic Pydantic Response Schema ===
class StandardResponse(BaseModel, Generic[T]):
    code: int
    message: str
    data: Optional[T] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": 0,
                "message": "Success",
                "data": {}
            }
        }
    }


# === 成功响应 ===
def response_success(
    data: Any = None,
    code: ResponseCodeEnum = ResponseCodeEnum.SUCCESS,
    http_status: int = 200,
    message: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    final_message = message or code.message
    logger.debug(f"Response Success | code: {code.code}, message: {final_message}")

    return JSONResponse(
        status_code=http_status,
        content={
            "code": code.code,
            "message": final_message,
            "data": jsonable_encoder(data),
        },
        headers=headers
    )


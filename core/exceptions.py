"""
全局异常处理器

BusinessException 及其子类（领域异常、支付网关异常）统一转换为错误响应，
HTTP 状态码由业务码决定；其他异常记录日志后返回 500。
"""
import traceback
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status

from core.logging_config import get_logger
from core.response import error_response
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)

HTTP_STATUS_BY_CODE = {
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    BusinessCode.BUSINESS_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,
    BusinessCode.FORBIDDEN: http_status.HTTP_403_FORBIDDEN,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    # 上游 LINE Pay
    PaymentCode.PROVIDER_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.TRANSPORT_ERROR: http_status.HTTP_504_GATEWAY_TIMEOUT,
    PaymentCode.CONFIGURATION_ERROR: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    # 本地支付流程
    PaymentCode.UNSUPPORTED_CURRENCY: http_status.HTTP_400_BAD_REQUEST,
    PaymentCode.INVALID_CALLBACK: http_status.HTTP_400_BAD_REQUEST,
    PaymentCode.TRANSACTION_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    PaymentCode.MISSING_CHARGE_REFERENCE: http_status.HTTP_409_CONFLICT,
    PaymentCode.INVALID_TRANSACTION_STATE: http_status.HTTP_409_CONFLICT,
}

CODE_BY_HTTP_STATUS = {
    401: BusinessCode.UNAUTHORIZED,
    403: BusinessCode.FORBIDDEN,
    404: BusinessCode.NOT_FOUND,
    503: BusinessCode.SERVICE_UNAVAILABLE,
}


def business_code_to_http_status(code: int) -> int:
    """业务码 -> HTTP 状态码，未登记的按 400 处理"""
    return HTTP_STATUS_BY_CODE.get(code, http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _json(status_code: int, response, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"), headers=headers)


async def handle_business_exception(request: Request, exc: BusinessException) -> JSONResponse:
    response = error_response(
        code=exc.code,
        message=exc.message,
        error_type=exc.error_type,
        details=exc.details,
        field=exc.field,
        request_id=_request_id(request),
    )
    return _json(business_code_to_http_status(exc.code), response)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    # loc[0] 是 body/query 等来源
    field = ".".join(str(part) for part in first.get("loc", [])[1:])
    response = error_response(
        code=BusinessCode.PARAM_VALIDATION_ERROR,
        message=f"Validation failed: {first.get('msg', 'unknown')}",
        error_type="ValidationError",
        details={"errors": errors},
        field=field or None,
        request_id=_request_id(request),
    )
    return _json(http_status.HTTP_422_UNPROCESSABLE_ENTITY, response)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_response(
        code=CODE_BY_HTTP_STATUS.get(exc.status_code, BusinessCode.SYSTEM_ERROR),
        message=str(exc.detail),
        error_type="HTTPError",
        details={"status_code": exc.status_code},
        request_id=_request_id(request),
    )
    return _json(exc.status_code, response, headers=getattr(exc, "headers", None))


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    request_id = _request_id(request)
    logger.error("unhandled_exception", request_id=request_id, error=str(exc), exc_info=True)
    details = None
    if request.app.debug:
        details = {"exception": str(exc), "traceback": traceback.format_exc()}
    response = error_response(
        code=BusinessCode.SYSTEM_ERROR,
        message="Internal server error",
        error_type="SystemError",
        details=details,
        request_id=request_id,
    )
    return _json(http_status.HTTP_500_INTERNAL_SERVER_ERROR, response)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BusinessException, handle_business_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_exception)

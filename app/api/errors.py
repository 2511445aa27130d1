import logging
from fastapi import HTTPException, status

from app.utils.exceptions import SessionExpiredError, is_session_error

logger = logging.getLogger(__name__)


def to_http_error(error: Exception, detail: str) -> Exception:
    """
    把未预期的异常转换为接口错误
    会话/授权类错误返回401，方便前端跳转登录；其余返回500
    """
    if is_session_error(error):
        logger.warning(f"会话失效: {error}")
        return SessionExpiredError("会话已过期，请重新登录")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail
    )

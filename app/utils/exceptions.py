"""
业务异常定义
持久层（SQLAlchemy）抛出的异常不在这里转换，原样向上传播；
只有会话/授权类错误需要被单独识别出来，方便前端跳转重新登录。
"""
from sqlalchemy.exc import SQLAlchemyError


class ReviewTrackerError(Exception):
    """所有业务异常的基类"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReviewTrackerError):
    """输入校验失败（日期格式错误、缺少必填字段等）"""
    status_code = 400


class NotFoundError(ReviewTrackerError):
    """请求的课程或复习项不存在"""
    status_code = 404


class ReviewStateError(ReviewTrackerError):
    """当前复习状态不允许该操作，例如改期一个已完成的复习"""
    status_code = 409


class SessionExpiredError(ReviewTrackerError):
    """会话失效或未授权"""
    status_code = 401


SESSION_ERROR_KEYWORDS = ("session", "unauthorized", "jwt", "auth", "permission denied")


def is_session_error(error: BaseException) -> bool:
    """判断异常是否属于会话/授权失败"""
    if error is None:
        return False
    if isinstance(error, SessionExpiredError):
        return True
    if isinstance(error, ReviewTrackerError):
        return False
    # SQLAlchemy 的 Session 是ORM会话，消息里的 "Session" 与登录无关
    if isinstance(error, SQLAlchemyError):
        return False

    message = str(error).lower()
    return any(keyword in message for keyword in SESSION_ERROR_KEYWORDS)

"""
复习完成状态机

两个状态：未完成(completed=False, completed_at=None) 和 已完成(completed=True, completed_at=时间)。
两个方向的切换都是正常操作，撤销完成不是错误路径。
所有函数都是纯函数，失败时调用方直接保留旧状态即可回滚。
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class CompletionStatus(Enum):
    """完成状态枚举"""
    PENDING = "pending"
    COMPLETED = "completed"


def effective_completed(completed: Optional[bool], completed_at: Optional[datetime]) -> bool:
    """completed_at 为空时无论 completed 存的是什么都按未完成处理"""
    return bool(completed) and completed_at is not None


@dataclass(frozen=True)
class CompletionState:
    """完成状态数据类"""
    completed: bool = False
    completed_at: Optional[datetime] = None

    @classmethod
    def from_review(cls, review) -> "CompletionState":
        """从复习记录读取状态，不满足不变式的数据归一为未完成"""
        if effective_completed(review.completed, review.completed_at):
            return cls(completed=True, completed_at=review.completed_at)
        return cls()

    @property
    def status(self) -> CompletionStatus:
        if effective_completed(self.completed, self.completed_at):
            return CompletionStatus.COMPLETED
        return CompletionStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status is CompletionStatus.COMPLETED

    def as_fields(self) -> dict:
        """转换为数据库更新字段"""
        return {"completed": self.completed, "completed_at": self.completed_at}


def mark_complete(state: CompletionState, now: datetime) -> CompletionState:
    """未完成 -> 已完成；已完成的保持原来的完成时间"""
    if state.is_completed:
        return state
    return CompletionState(completed=True, completed_at=now)


def mark_incomplete(state: CompletionState) -> CompletionState:
    """任意状态 -> 未完成，清空完成时间"""
    return CompletionState()


def toggle(state: CompletionState, now: datetime) -> CompletionState:
    """切换完成状态"""
    if state.is_completed:
        return mark_incomplete(state)
    return mark_complete(state, now)


def can_reschedule(state: CompletionState) -> bool:
    """只有未完成的复习允许改期"""
    return not state.is_completed

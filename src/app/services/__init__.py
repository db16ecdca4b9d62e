from .unit_of_work import UnitOfWork
from .message_sender import MessageSender, OutboundMessage, SendResult
from .rate_limiter import RateLimiter
from .task_runner import TaskRunner

__all__ = [
    "UnitOfWork",
    "MessageSender",
    "OutboundMessage",
    "SendResult",
    "RateLimiter",
    "TaskRunner",
]

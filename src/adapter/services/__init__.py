from .unit_of_work import SqlAlchemyUnitOfWork
from .meta_message_sender import (
    LoggingMessageSender,
    MetaCloudMessageSender,
    create_message_sender,
)
from .rate_limiter import (
    TokenBucketRateLimiter,
    CompositeRateLimiter,
    create_rate_limiter,
)
from .task_runner import AsyncioTaskRunner

__all__ = [
    "SqlAlchemyUnitOfWork",
    "LoggingMessageSender",
    "MetaCloudMessageSender",
    "create_message_sender",
    "TokenBucketRateLimiter",
    "CompositeRateLimiter",
    "create_rate_limiter",
    "AsyncioTaskRunner",
]

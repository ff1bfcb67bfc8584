from pricecomparer.bot.middlewares.log_context import LogContextMiddleware
from pricecomparer.bot.middlewares.throttle import ThrottleMiddleware

__all__ = [
    "LogContextMiddleware",
    "ThrottleMiddleware",
]

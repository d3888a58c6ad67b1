from backoffice.core.middleware.metrics import MetricsMiddleware
from backoffice.core.middleware.request_logging import RequestLoggingMiddleware
from backoffice.core.middleware.request_size_limit import RequestSizeLimitMiddleware
from backoffice.core.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "MetricsMiddleware",
    "RequestLoggingMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
]

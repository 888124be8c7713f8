# Completion backends, call spacing and response parsing
from .backends import CompletionBackend, CallableBackend, create_backend
from .parsing import ParsedResponse, parse_structured_response
from .rate_limit import MinIntervalRateLimiter, RateLimitedBackend

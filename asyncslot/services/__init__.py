"""
Slot runners - one async operation or stream per logical slot.

Provides:
- CacheStore: Keyed memo of results for stale-while-revalidate reads
- RetryScheduler: Delayed automatic retries with a bounded counter
- OperationController: Supersession, caching and retries around one operation
- StreamConsumer: Incremental consumption of a chunked response body
- HttpChunkSource / request_json: httpx-backed transport
"""

from asyncslot.services.errors import (
    ServiceError,
    HTTPStatusError,
    ProviderConfigError,
    RateLimitError,
    RequestTimeoutError,
    StreamError,
)
from asyncslot.services.cache import (
    CacheEntry,
    CacheStats,
    CacheStore,
    get_cache_store,
    reset_cache_store,
)
from asyncslot.services.token import InvocationToken, TokenSource
from asyncslot.services.retry import RetryPolicy, RetryScheduler
from asyncslot.services.controller import (
    OperationConfig,
    OperationController,
    OperationHandlers,
    OperationState,
)
from asyncslot.services.stream import (
    SKIP,
    BaseChunkSource,
    ChunkTransform,
    StreamConsumer,
    StreamHandlers,
    StreamOverride,
    StreamRequest,
    StreamState,
)
from asyncslot.services.http import (
    HttpChunkSource,
    close_http_client,
    get_http_client,
    request_json,
)
from asyncslot.services.transforms import openai_sse_transform, sse_field_transform

__all__ = [
    # Errors
    "ServiceError",
    "HTTPStatusError",
    "ProviderConfigError",
    "RateLimitError",
    "RequestTimeoutError",
    "StreamError",
    # Cache
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "get_cache_store",
    "reset_cache_store",
    # Tokens
    "InvocationToken",
    "TokenSource",
    # Retry
    "RetryPolicy",
    "RetryScheduler",
    # Operation slot
    "OperationConfig",
    "OperationController",
    "OperationHandlers",
    "OperationState",
    # Stream slot
    "SKIP",
    "BaseChunkSource",
    "ChunkTransform",
    "StreamConsumer",
    "StreamHandlers",
    "StreamOverride",
    "StreamRequest",
    "StreamState",
    # Transport
    "HttpChunkSource",
    "close_http_client",
    "get_http_client",
    "request_json",
    # Transforms
    "openai_sse_transform",
    "sse_field_transform",
]

"""WpVet acquisition package.

Modules:
- network: bounded fetch client and FIFO concurrency limiter
- remote: unauthenticated HTTP inference of core/plugins/themes
- inventory: parsing of management-tool inventory JSON
- ssh: inventory over a remote shell
- audit: misconfiguration checks

Only ``network`` is re-exported here; the orchestrating modules depend on
the version extractor, which itself imports ``network``.
"""

from .network import (
    ConcurrencyLimiter,
    FetchClient,
    FetchResponse,
    classify_error,
    is_retryable_status,
)

__all__ = [
    'ConcurrencyLimiter',
    'FetchClient',
    'FetchResponse',
    'classify_error',
    'is_retryable_status',
]

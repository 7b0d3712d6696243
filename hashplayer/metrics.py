"""
metrics.py - Prometheus metrics for the hashplayer package.
"""

from prometheus_client import Counter, Histogram, start_http_server

BLOCKS_SERVED = Counter(
    'hashplayer_blocks_served_total', 'Total number of hashed blocks returned by block servers'
)
BLOCKS_VERIFIED = Counter(
    'hashplayer_blocks_verified_total', 'Total number of hashed blocks that passed verification'
)
VERIFICATION_FAILURES = Counter(
    'hashplayer_verification_failures_total', 'Total number of hashed blocks that failed verification'
)
CACHE_LOOKUPS = Counter(
    'hashplayer_cache_lookups_total', 'Chain builds answered from cache (hit) or built (miss)', ['result']
)
PREPROCESS_LATENCY = Histogram(
    'hashplayer_preprocess_seconds', 'Time spent building a hash chain in seconds'
)


def start_metrics_server(port: int = 8000, addr: str = '0.0.0.0') -> None:
    """
    Start an HTTP server to expose Prometheus metrics on /metrics.
    """
    start_http_server(port, addr=addr)

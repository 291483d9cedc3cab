from prometheus_client import Counter, Gauge, Histogram, start_http_server
from loguru import logger

# Sync metrics
BLOCKS_SYNCED = Counter(
    'mirror_blocks_synced_total',
    'Total number of blocks persisted',
    ['workspace']
)

TRANSACTIONS_SYNCED = Counter(
    'mirror_transactions_synced_total',
    'Total number of transactions persisted',
    ['workspace']
)

SYNC_FAILURES = Counter(
    'mirror_sync_failures_total',
    'Total number of blocks or transactions that failed to sync',
    ['workspace', 'unit']
)

LATEST_SYNCED_BLOCK = Gauge(
    'mirror_latest_synced_block_number',
    'Latest block number persisted',
    ['workspace']
)

BACKFILL_MISSING_BLOCKS = Gauge(
    'mirror_backfill_missing_blocks',
    'Number of missing blocks found by the last backfill pass',
    ['workspace']
)

# Chain metrics
CHAIN_TIP_BLOCK = Gauge(
    'mirror_chain_tip_block_number',
    'Latest block number on chain',
    ['workspace']
)

RECONNECTS = Counter(
    'mirror_reconnects_total',
    'Total number of reconnect attempts after a transport error',
    ['workspace']
)

# Artifact metrics
ARTIFACTS_SYNCED = Counter(
    'mirror_artifacts_synced_total',
    'Total number of contract artifacts persisted',
    ['workspace']
)

# RPC metrics
RPC_REQUESTS = Counter(
    'mirror_rpc_requests_total',
    'Total number of RPC requests made',
    ['workspace', 'method']
)

RPC_ERRORS = Counter(
    'mirror_rpc_errors_total',
    'Total number of RPC errors encountered',
    ['workspace', 'method']
)

RPC_LATENCY = Histogram(
    'mirror_rpc_latency_seconds',
    'RPC request latency',
    ['workspace', 'method'],
    buckets=[0.025, 0.05, 0.075, 0.1, 0.15, 0.2, 0.3, 0.5, 1.0, 5.0, 10.0]
)

def start_metrics_server(port: int = 8000, addr: str = '0.0.0.0'):
    """Start Prometheus metrics server

    Args:
        port (int): Port to listen on
        addr (str): Address to bind to (default: all interfaces)
    """
    logger.info(f"Starting Prometheus metrics server on {addr}:{port}")
    start_http_server(port, addr)

    # Reset all metrics to clear any stale values
    metrics_to_clear = [
        BLOCKS_SYNCED,
        TRANSACTIONS_SYNCED,
        SYNC_FAILURES,
        LATEST_SYNCED_BLOCK,
        BACKFILL_MISSING_BLOCKS,
        CHAIN_TIP_BLOCK,
        RECONNECTS,
        ARTIFACTS_SYNCED,
        RPC_REQUESTS,
        RPC_ERRORS,
        RPC_LATENCY
    ]

    for metric in metrics_to_clear:
        metric.clear()

    logger.info("All metrics initialized to clean state")

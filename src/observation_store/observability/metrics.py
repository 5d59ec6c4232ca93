from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Ingestion Metrics
OBSERVATIONS_INGESTED = Counter(
    "observations_ingested_total",
    "Total number of ingest calls by outcome",
    ["result"]  # "inserted" | "existing"
)

VALIDATION_ERRORS = Counter(
    "validation_errors_total",
    "Inputs rejected before reaching storage",
    ["kind"]
)

# Chunking Metrics
CHUNKS_UPSERTED = Counter(
    "chunks_upserted_total",
    "Total number of chunk rows inserted or overwritten"
)

# Storage Metrics
STORAGE_LATENCY = Histogram(
    "storage_operation_seconds",
    "Storage operation latency in seconds",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

def get_metrics():
    """Return latest metrics in Prometheus format."""
    return generate_latest(), CONTENT_TYPE_LATEST

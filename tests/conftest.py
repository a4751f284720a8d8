import os

# Tests never export spans; keep the tracer provider out of the way.
os.environ.setdefault("JOBLY_OTEL_ENABLED", "false")

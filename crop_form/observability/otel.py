from __future__ import annotations

import json
import os
from contextlib import contextmanager
from typing import Dict, Optional


_OTEL_INITIALIZED = False
_OTEL_INSTRUMENTED = False
_OTEL_ATTR_MAX_LEN = int(os.getenv("OTEL_ATTR_MAX_LEN", "2000"))
_DEFAULT_SERVICE = "crop-recommendation-form"


class _NoopSpan:
    def set_attribute(self, *args, **kwargs) -> None:
        return None

    def record_exception(self, *args, **kwargs) -> None:
        return None

    def set_status(self, *args, **kwargs) -> None:
        return None


def _safe_serialize(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def build_span_attributes(
    prefix: str, payload: object, limit: Optional[int] = None
) -> Dict[str, object]:
    text = _safe_serialize(payload)
    size = len(text)
    max_len = _OTEL_ATTR_MAX_LEN if limit is None else limit
    truncated = bool(max_len and size > max_len)
    if truncated:
        text = text[:max_len] + "..."
    return {
        prefix: text,
        f"{prefix}.size": size,
        f"{prefix}.truncated": truncated,
    }


def _set_span_attributes(span: object, attributes: Optional[Dict[str, object]]) -> None:
    if not span or not attributes:
        return None
    for key, value in attributes.items():
        if value is None:
            continue
        if not isinstance(value, (str, bool, int, float)):
            value = str(value)
        span.set_attribute(key, value)


@contextmanager
def start_span(name: str, attributes: Optional[Dict[str, object]] = None):
    try:
        from opentelemetry import trace
    except ImportError:
        yield _NoopSpan()
        return
    service = os.getenv("OTEL_SERVICE_NAME") or _DEFAULT_SERVICE
    tracer = trace.get_tracer(service)
    with tracer.start_as_current_span(name) as span:
        _set_span_attributes(span, attributes)
        yield span


def record_exception(span: object, exc: BaseException) -> None:
    if not span:
        return None
    span.record_exception(exc)
    try:
        from opentelemetry.trace import Status, StatusCode
    except ImportError:
        return None
    span.set_status(Status(StatusCode.ERROR, str(exc)))


def init_otel(service_name: Optional[str] = None) -> bool:
    """Install an OTLP span exporter when an endpoint is configured."""
    global _OTEL_INITIALIZED
    if _OTEL_INITIALIZED:
        return True
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT") or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    if not endpoint:
        return False
    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        return False

    if "/v1/" not in endpoint:
        endpoint = endpoint.rstrip("/") + "/v1/traces"
    service = service_name or os.getenv("OTEL_SERVICE_NAME") or _DEFAULT_SERVICE
    provider = TracerProvider(resource=Resource.create({"service.name": service}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    _OTEL_INITIALIZED = True
    return True


def instrument_httpx() -> bool:
    global _OTEL_INSTRUMENTED
    if _OTEL_INSTRUMENTED:
        return True
    try:
        from opentelemetry.instrumentation.httpx import (
            HTTPXClientInstrumentor,
        )
    except ImportError:
        return False
    HTTPXClientInstrumentor().instrument()
    _OTEL_INSTRUMENTED = True
    return True

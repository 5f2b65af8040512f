"""Metrics endpoint for Prometheus scraping."""

from fastapi import APIRouter, Request, Response

from ..core.observability import get_prometheus_metrics, metrics_collector

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Request, booking, login and notification counters",
    response_class=Response,
    tags=["Observability"]
)
async def metrics(request: Request):
    """
    Return Prometheus metrics.

    The notification queue gauge is refreshed on every scrape.

    Returns:
        Response: Prometheus metrics in text format
    """
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is not None:
        metrics_collector.set_notification_queue_size(notifier.pending)

    return Response(
        content=get_prometheus_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )

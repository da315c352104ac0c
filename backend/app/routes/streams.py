"""
routes/streams.py — Live snapshot feeds as server-sent events
(url_prefix=/api/v1/trips).

  GET /trips/stream                      trips the caller belongs to
  GET /trips/:id/<collection>/stream     one trip's expenses / itinerary /
                                         messages (or "trips" for the trip)

Each event is `event: snapshot` carrying the full sorted list as JSON. The
first event is sent immediately. A comment line is sent every
STREAM_HEARTBEAT_SECONDS while nothing changes so proxies keep the
connection open. The subscription is cancelled when the client goes away.
"""

from __future__ import annotations

import queue
from typing import Callable

from flask import Blueprint, Response, current_app, g, stream_with_context

from backend.app.extensions import get_item_store
from backend.app.middleware.auth_middleware import require_auth
from backend.app.services import feed_service
from backend.app.store import Subscription

streams_bp = Blueprint("streams", __name__)

KEEP_ALIVE = ": keep-alive\n\n"


def _event_stream(open_feed: Callable[[Callable[[list[dict]], None]], Subscription]) -> Response:
    snapshots: queue.Queue = queue.Queue()
    # Opened before streaming starts so 403/404 still come back as JSON errors.
    subscription = open_feed(snapshots.put)
    heartbeat = current_app.config.get("STREAM_HEARTBEAT_SECONDS", 15.0)

    def generate():
        try:
            while True:
                try:
                    snapshot = snapshots.get(timeout=heartbeat)
                except queue.Empty:
                    yield KEEP_ALIVE
                    continue
                yield f"event: snapshot\ndata: {current_app.json.dumps(snapshot)}\n\n"
        finally:
            subscription.cancel()

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@streams_bp.route("/stream", methods=["GET"])
@require_auth
def stream_my_trips():
    store = get_item_store()
    user_id = g.user_id
    return _event_stream(
        lambda on_change: feed_service.open_member_trips_feed(user_id, store, on_change)
    )


@streams_bp.route("/<trip_id>/<collection>/stream", methods=["GET"])
@require_auth
def stream_trip_collection(trip_id: str, collection: str):
    store = get_item_store()
    user_id = g.user_id
    return _event_stream(
        lambda on_change: feed_service.open_trip_feed(
            trip_id, collection, user_id, store, on_change,
        )
    )

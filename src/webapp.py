import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from src import db, timezone_utils
from src.api.auto_resolution import build_service
from src.api.stores import SqliteBookingStore
from src.api.trigger_verify import SIGNATURE_HEADER, verify_trigger
from src.timezone_utils import parse_iso_with_tz

logger = logging.getLogger(__name__)

db.init_db()

app = FastAPI(title="Unfilled booking auto RBU/CBU")


def get_service():
    return build_service()


def outcome_to_dict(outcome) -> dict:
    data = {"booking_id": outcome.booking_id, "kind": outcome.kind}
    if outcome.kind == "rescheduled":
        data.update({
            "original_date_start": outcome.original_date_start.isoformat(),
            "new_date_start": outcome.new_date_start.isoformat(),
            "strategy": outcome.strategy,
        })
    elif outcome.kind == "cancelled":
        data.update({
            "reason": outcome.reason.code,
            "message": outcome.message,
            "success": outcome.success,
            "refund": outcome.refund,
            "errors": outcome.errors,
        })
    elif outcome.kind == "anomaly_logged":
        data["message"] = outcome.message
    else:
        data["cause"] = outcome.cause
    return data


async def _verified_body(request: Request) -> bytes:
    body = await request.body()
    if not verify_trigger(body, request.headers.get(SIGNATURE_HEADER, "")):
        raise HTTPException(status_code=401, detail="Invalid trigger signature")
    return body


# -------------------
# TRIGGERS (called by the external scheduler)
# -------------------
@app.post("/auto-resolution/run")
async def run_batch_endpoint(request: Request):
    """
    Run one batch pass.
    Optional JSON body: {"reference_time": "2025-01-22T09:00:00-05:00"}
    """
    body = await _verified_body(request)

    reference_time = None
    if body:
        try:
            data = await request.json()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid JSON payload: {e}")
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Empty or invalid payload")
        if data.get("reference_time"):
            try:
                reference_time = parse_iso_with_tz(data["reference_time"])
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid reference_time")

    outcomes = get_service().run_batch(reference_time)

    counts = {}
    for outcome in outcomes:
        counts[outcome.kind] = counts.get(outcome.kind, 0) + 1
    logger.info(f"Batch pass processed {len(outcomes)} bookings: {counts}")

    return JSONResponse({
        "processed": len(outcomes),
        "counts": counts,
        "outcomes": [outcome_to_dict(outcome) for outcome in outcomes],
    })


@app.post("/auto-resolution/bookings/{booking_id}")
async def resolve_booking_endpoint(booking_id: int, request: Request):
    await _verified_body(request)

    booking = SqliteBookingStore().get(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail=f"Booking {booking_id} not found")

    outcome = get_service().reschedule_or_cancel(booking)
    return JSONResponse(outcome_to_dict(outcome))


# -------------------
# READ ONLY
# -------------------
@app.get("/auto-resolution/candidates")
async def candidates_endpoint():
    service = get_service()
    batch = service.eligibility.select_batch()
    return JSONResponse({
        "checked_at": timezone_utils.now().isoformat(),
        "booking_ids": [booking.id for booking in batch],
    })


@app.get("/auto-resolution/log")
async def outcome_log_endpoint(booking_id: int = None):
    entries = db.get_outcome_log(booking_id)
    return JSONResponse({"count": len(entries), "entries": entries})

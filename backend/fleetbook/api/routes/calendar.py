from __future__ import annotations

from flask import Blueprint, jsonify, request

from fleetbook.api.auth_middleware import require_auth
from fleetbook.api.dependencies import get_data_service
from fleetbook.services.calendar_service import grid_for_month, render_text
from fleetbook.services.occupancy_service import MonthRef
from fleetbook.utils.exceptions import ValidationError


calendar_bp = Blueprint("calendar", __name__, url_prefix="/api/calendar")


def _month_ref(year: int, month: int) -> MonthRef:
    try:
        return MonthRef(year, month)
    except ValueError as exc:
        raise ValidationError(str(exc), field="month", details={"year": year, "month": month})


@calendar_bp.route("", methods=["GET"])
@require_auth
def get_current_month():
    month = MonthRef.current()
    return jsonify(grid_for_month(get_data_service(), month).model_dump(mode="json"))


@calendar_bp.route("/<int:year>/<int:month>", methods=["GET"])
@require_auth
def get_month(year: int, month: int):
    """Car x day grid for one month. ``?format=text`` returns the plain-text rendering."""
    grid = grid_for_month(get_data_service(), _month_ref(year, month))
    if request.args.get("format") == "text":
        return render_text(grid), 200, {"Content-Type": "text/plain; charset=utf-8"}
    return jsonify(grid.model_dump(mode="json"))

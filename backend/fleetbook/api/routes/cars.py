from __future__ import annotations

from flask import Blueprint, jsonify, request
from pydantic import ValidationError as PydanticValidationError

from fleetbook.api.auth_middleware import require_admin, require_auth
from fleetbook.api.dependencies import get_data_service, get_refresh_signal, get_session_context
from fleetbook.schemas.car import CarCreateRequest, CarResponse, CarUpdateRequest
from fleetbook.utils.exceptions import NotFoundError, validation_error_from_pydantic


cars_bp = Blueprint("cars", __name__, url_prefix="/api/cars")


def _parse_active_filter():
    raw = request.args.get("active")
    if raw is None or raw == "":
        return True
    if raw.lower() == "all":
        return None
    return raw.lower() in ("1", "true", "yes")


@cars_bp.route("", methods=["GET"])
@require_auth
def list_cars():
    """List cars; active only unless ``?active=all`` or ``?active=false``."""
    cars = get_data_service().list_cars(active=_parse_active_filter())
    return jsonify([CarResponse.model_validate(c).model_dump(mode="json") for c in cars])


@cars_bp.route("/<car_id>", methods=["GET"])
@require_auth
def get_car(car_id: str):
    car = get_data_service().get_car(car_id)
    if not car:
        raise NotFoundError("Car", car_id)
    return jsonify(CarResponse.model_validate(car).model_dump(mode="json"))


@cars_bp.route("", methods=["POST"])
@require_admin
def create_car():
    data = request.get_json(silent=True) or {}
    try:
        req = CarCreateRequest.model_validate(data)
    except PydanticValidationError as exc:
        raise validation_error_from_pydantic(exc, "Invalid car request")

    car = get_data_service().create_car(
        name=req.name,
        plate_number=req.plate_number,
        capacity=req.capacity,
        is_active=req.is_active,
        created_by=get_session_context().user_id,
    )
    get_refresh_signal().emit("car_created")
    return jsonify(CarResponse.model_validate(car).model_dump(mode="json")), 201


@cars_bp.route("/<car_id>", methods=["PUT"])
@require_admin
def update_car(car_id: str):
    data = request.get_json(silent=True) or {}
    try:
        req = CarUpdateRequest.model_validate(data)
    except PydanticValidationError as exc:
        raise validation_error_from_pydantic(exc, "Invalid car update")

    car = get_data_service().update_car(car_id, **req.model_dump(exclude_none=True))
    get_refresh_signal().emit("car_updated")
    return jsonify(CarResponse.model_validate(car).model_dump(mode="json"))


@cars_bp.route("/<car_id>", methods=["DELETE"])
@require_admin
def delete_car(car_id: str):
    get_data_service().delete_car(car_id)
    get_refresh_signal().emit("car_deleted")
    return "", 204

import logging
from typing import Optional

from flask import Flask
from flask_socketio import SocketIO

from fleetbook.api.auth_middleware import init_auth_middleware
from fleetbook.api.booking_status_events import AdminRoomMembers, register_booking_broadcasts
from fleetbook.api.dependencies import EXTENSION_KEY
from fleetbook.api.middleware import register_error_handlers
from fleetbook.api.routes.bookings import bookings_bp
from fleetbook.api.routes.calendar import calendar_bp
from fleetbook.api.routes.cars import cars_bp
from fleetbook.api.socket_events import register_socket_events
from fleetbook.config import settings
from fleetbook.database import init_db
from fleetbook.services.background_tasks import TaskLane
from fleetbook.services.booking_data_service import BookingDataService
from fleetbook.services.booking_service import RefreshSignal
from fleetbook.utils.idempotency import InFlightGuard

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def create_app(data_service: Optional[BookingDataService] = None, create_tables: bool = True) -> Flask:
    """Build the Flask app with its Socket.IO server (``app.extensions["socketio"]``)."""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key

    if create_tables:
        init_db()

    data_service = data_service or BookingDataService()
    refresh_signal = RefreshSignal()
    app.extensions[EXTENSION_KEY] = {
        "data_service": data_service,
        "guard": InFlightGuard(),
        "refresh_signal": refresh_signal,
    }

    init_auth_middleware(app)
    register_error_handlers(app)

    app.register_blueprint(bookings_bp)
    app.register_blueprint(cars_bp)
    app.register_blueprint(calendar_bp)

    socketio = SocketIO(app, cors_allowed_origins=[settings.frontend_url], async_mode="threading")
    admin_members = AdminRoomMembers()
    broadcast_lane = TaskLane("broadcasts")
    register_socket_events(socketio, admin_members)
    app.extensions[EXTENSION_KEY]["admin_members"] = admin_members
    app.extensions[EXTENSION_KEY]["broadcast_lane"] = broadcast_lane
    app.extensions[EXTENSION_KEY]["broadcasts"] = register_booking_broadcasts(
        socketio, data_service, broadcast_lane, admin_members
    )

    def invalidate_clients(reason: str) -> None:
        # Every open calendar reloads; the data itself is never pushed.
        socketio.emit("bookings_invalidated", {"reason": reason})

    refresh_signal.connect(invalidate_clients)

    @app.route("/")
    def root():
        return {"message": "Fleet Booking API", "version": "1.0.0"}

    @app.route("/health")
    def health():
        return {"status": "healthy"}

    logger.info(f"Application created (env={settings.flask_env})")
    return app


if __name__ == "__main__":
    app = create_app()
    app.extensions["socketio"].run(app, debug=settings.is_dev(), allow_unsafe_werkzeug=True)

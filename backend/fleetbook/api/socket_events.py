from flask_socketio import emit, join_room, leave_room
from flask import request
import logging

from fleetbook.api.auth_middleware import resolve_session_context
from fleetbook.api.booking_status_events import AdminRoomMembers, pending_bookings_payload
from fleetbook.api.dependencies import get_data_service
from fleetbook.config import settings

logger = logging.getLogger(__name__)


def register_socket_events(socketio, members: AdminRoomMembers):
    """Register Socket.IO event handlers; admin room joins are recorded in ``members``."""

    @socketio.on('connect')
    def handle_connect():
        logger.info(f"Client connected: {request.sid}")

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        members.discard(request.sid)
        logger.info(f"Client disconnected: {request.sid}")

    @socketio.on('join')
    def on_join(data):
        """Handle join room event; the admin room needs an admin session."""
        room = (data or {}).get('room')
        if not room:
            logger.warning(f"Client {request.sid} tried to join without room")
            return

        if room == settings.admin_room:
            session = resolve_session_context(request.headers.get(settings.session_header))
            if session is None or not session.is_admin:
                logger.warning(f"Client {request.sid} refused from room: {room}")
                emit('join_error', {'room': room, 'message': 'Admin access required'})
                return
            members.add(request.sid, session.user_id)

        join_room(room)
        logger.info(f"Client {request.sid} joined room: {room}")
        emit('joined', {'room': room})

        if room == settings.admin_room:
            # Newly joined admins get the current queue instead of waiting for the next change.
            emit('pending_bookings_update', pending_bookings_payload(get_data_service()))

    @socketio.on('leave')
    def on_leave(data):
        """Handle leave room event"""
        room = (data or {}).get('room')
        if not room:
            logger.warning(f"Client {request.sid} tried to leave without room")
            return

        if room == settings.admin_room:
            members.discard(request.sid)
        leave_room(room)
        logger.info(f"Client {request.sid} left room: {room}")
        emit('left', {'room': room})

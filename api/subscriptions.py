from flask import Blueprint

from api.responses import api_response
from services import channels
from utils.decorators import jwt_required

bp = Blueprint("subscriptions", __name__)


@bp.post("/<channel_id>")
@jwt_required()
def toggle_subscription(channel_id: str, current_user):
    """
    Subscribe to a channel, or unsubscribe if already subscribed.
    ---
    tags:
      - Subscriptions
    security:
      - Bearer: []
    parameters:
      - { in: path, name: channel_id, type: string, required: true }
    responses:
      200:
        description: OK (data.subscribed is the new state)
      400:
        description: Subscribing to your own channel
      404:
        description: Channel does not exist
    """
    result = channels.toggle_subscription(current_user, channel_id)
    message = "Subscribed successfully" if result["subscribed"] else "Unsubscribed successfully"
    return api_response(result, message)

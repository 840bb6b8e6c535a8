"""
Channel profile aggregation, watch history and subscriptions.

The three derived profile fields are computed with plain count/exists queries
over the subscriptions table:
- subscribersCount: edges whose channel is the target
- channelsSubscribedToCount: edges whose subscriber is the target
- isSubscribed: an edge (viewer, target) exists
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import joinedload

from models import storage
from models.subscription import Subscription
from models.user import User
from models.video import Video, watch_history
from services.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def get_channel_profile(username: Optional[str], viewer: Optional[User]) -> Dict[str, Any]:
    if username is None or not username.strip():
        raise ValidationError("username is missing")

    session = storage.get_session()
    channel = session.query(User).filter(func.lower(User.username) == username.strip().lower()).first()
    if not channel:
        raise NotFoundError("Channel does not exist")

    subscribers_count = (
        session.query(func.count(Subscription.id)).filter(Subscription.channel_id == channel.id).scalar()
    )
    subscribed_to_count = (
        session.query(func.count(Subscription.id)).filter(Subscription.subscriber_id == channel.id).scalar()
    )
    is_subscribed = False
    if viewer is not None:
        is_subscribed = session.query(
            session.query(Subscription)
            .filter(Subscription.channel_id == channel.id, Subscription.subscriber_id == viewer.id)
            .exists()
        ).scalar()

    return {
        "fullName": channel.full_name,
        "username": channel.username,
        "subscribersCount": subscribers_count or 0,
        "channelsSubscribedToCount": subscribed_to_count or 0,
        "isSubscribed": bool(is_subscribed),
        "avatar": channel.avatar,
        "coverImage": channel.cover_image,
        "email": channel.email,
    }


def get_watch_history(user: User) -> List[Video]:
    """Watched videos in order, each with its owner loaded."""
    session = storage.get_session()
    return (
        session.query(Video)
        .join(watch_history, watch_history.c.video_id == Video.id)
        .filter(watch_history.c.user_id == user.id)
        .options(joinedload(Video.owner))
        .order_by(watch_history.c.position.asc())
        .all()
    )


def add_to_watch_history(user: User, video_id: str) -> List[Video]:
    """Append a video to the user's history; a re-watched video moves to the end."""
    video = storage.get(Video, video_id)
    if not video:
        raise NotFoundError("Video not found")

    session = storage.get_session()
    last_position = session.execute(
        select(func.max(watch_history.c.position)).where(watch_history.c.user_id == user.id)
    ).scalar()
    session.execute(
        delete(watch_history).where(
            watch_history.c.user_id == user.id, watch_history.c.video_id == video.id
        )
    )
    session.execute(
        insert(watch_history).values(
            user_id=user.id, video_id=video.id, position=(last_position or 0) + 1
        )
    )
    video.views = (video.views or 0) + 1
    storage.new(video)
    storage.save()
    return get_watch_history(user)


def toggle_subscription(subscriber: User, channel_id: str) -> Dict[str, Any]:
    channel = storage.get(User, channel_id)
    if not channel:
        raise NotFoundError("Channel does not exist")
    if channel.id == subscriber.id:
        raise ValidationError("You cannot subscribe to your own channel")

    session = storage.get_session()
    existing = (
        session.query(Subscription)
        .filter(Subscription.subscriber_id == subscriber.id, Subscription.channel_id == channel.id)
        .first()
    )
    if existing:
        existing.delete()
        storage.save()
        logger.info("User %s unsubscribed from %s", subscriber.id, channel.id)
        return {"channelId": channel.id, "subscribed": False}

    storage.new(Subscription(subscriber_id=subscriber.id, channel_id=channel.id))
    storage.save()
    logger.info("User %s subscribed to %s", subscriber.id, channel.id)
    return {"channelId": channel.id, "subscribed": True}

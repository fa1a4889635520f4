"""
Twilio Video Service
Creates video rooms over the REST API and signs participant access tokens
"""

import logging
import time

import httpx
from jose import jwt as jose_jwt

from .. import config

logger = logging.getLogger(__name__)

TWILIO_VIDEO_API = "https://video.twilio.com/v1"


class VideoNotConfiguredError(Exception):
    """Twilio credentials are missing"""


class VideoServiceError(Exception):
    """Twilio rejected a request or could not be reached"""


def can_issue_tokens() -> bool:
    return bool(config.TWILIO_ACCOUNT_SID and config.TWILIO_API_KEY and config.TWILIO_API_SECRET)


def can_manage_rooms() -> bool:
    return bool(config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN)


def room_name_for_session(session_id: int) -> str:
    return f"session-{session_id}"


def generate_access_token(room_name: str, identity: str) -> str:
    """
    Sign a Twilio access token granting `identity` access to one video room.

    Access tokens are HS256 JWTs signed with the API key secret, with the
    Twilio content type header and a `grants` claim.
    """
    if not can_issue_tokens():
        raise VideoNotConfiguredError("Twilio is not configured")

    now = int(time.time())
    claims = {
        "jti": f"{config.TWILIO_API_KEY}-{now}",
        "iss": config.TWILIO_API_KEY,
        "sub": config.TWILIO_ACCOUNT_SID,
        "nbf": now,
        "exp": now + config.VIDEO_TOKEN_TTL_SECONDS,
        "grants": {"identity": identity, "video": {"room": room_name}},
    }
    token = jose_jwt.encode(
        claims,
        config.TWILIO_API_SECRET,
        algorithm="HS256",
        headers={"cty": "twilio-fpa;v=1", "typ": "JWT"},
    )
    logger.info(f"🎥 Issued video token for {identity} in room {room_name}")
    return token


async def ensure_room(room_name: str, max_participants: int = 2) -> dict:
    """Fetch the room by unique name, creating it when Twilio reports 404"""
    if not can_manage_rooms():
        raise VideoNotConfiguredError("Twilio is not configured")

    auth = (config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(f"{TWILIO_VIDEO_API}/Rooms/{room_name}", auth=auth)
            if response.status_code == 200:
                return response.json()

            if response.status_code != 404:
                logger.error(f"❌ Twilio room lookup failed: HTTP {response.status_code} {response.text}")
                raise VideoServiceError("Failed to create video room")

            logger.info(f"🎥 Creating Twilio room {room_name}")
            response = await client.post(
                f"{TWILIO_VIDEO_API}/Rooms",
                auth=auth,
                data={"UniqueName": room_name, "Type": "group", "MaxParticipants": max_participants},
            )
            if response.status_code not in (200, 201):
                logger.error(f"❌ Twilio room creation failed: HTTP {response.status_code} {response.text}")
                raise VideoServiceError("Failed to create video room")
            return response.json()
    except httpx.HTTPError as e:
        logger.error(f"❌ Twilio request error: {e}")
        raise VideoServiceError("Failed to create video room") from e


async def complete_room(room_name: str) -> None:
    """Mark a room completed so participants are disconnected; missing rooms are ignored"""
    if not can_manage_rooms():
        return

    auth = (config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                f"{TWILIO_VIDEO_API}/Rooms/{room_name}", auth=auth, data={"Status": "completed"}
            )
        if response.status_code not in (200, 404):
            logger.warning(f"⚠️ Could not complete Twilio room {room_name}: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ Could not complete Twilio room {room_name}: {e}")

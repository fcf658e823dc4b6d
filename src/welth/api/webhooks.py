"""Identity-provider webhook receiver.

Learn: The provider calls us when users are created, updated or
deleted. Deliveries are authenticated by signature (see
auth/webhook.py), then mirrored into the users table. Unknown event
types are acknowledged and ignored so the provider stops retrying.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from welth.auth import webhook
from welth.config import settings
from welth.db.engine import get_db
from welth.schemas.identity_event import IdentityEvent, IdentityUser
from welth.services.user_service import EmailInUseError, UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/webhooks")


@router.post("/identity")
async def receive_identity_event(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    body = await request.body()
    try:
        webhook.verify(
            settings.identity_webhook_secret,
            request.headers.get("svix-id"),
            request.headers.get("svix-timestamp"),
            request.headers.get("svix-signature"),
            body,
        )
    except webhook.WebhookSignatureError as e:
        logger.warning("welth.webhook.rejected", error=str(e))
        raise HTTPException(status_code=401, detail=str(e))

    try:
        event = IdentityEvent.model_validate_json(body)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Malformed event payload")

    svc = UserService(db)
    if event.type in ("user.created", "user.updated"):
        try:
            user = IdentityUser.model_validate(event.data)
        except ValidationError:
            raise HTTPException(status_code=400, detail="Malformed user payload")
        if not user.primary_email:
            raise HTTPException(status_code=422, detail="User has no email address")
        try:
            await svc.upsert(
                clerk_user_id=user.id,
                email=user.primary_email,
                name=user.full_name,
                image_url=user.image_url,
            )
        except EmailInUseError:
            logger.warning(
                "welth.webhook.email_conflict",
                event_type=event.type,
                clerk_user_id=user.id,
            )
            raise HTTPException(status_code=409, detail="Email already registered")
    elif event.type == "user.deleted":
        clerk_user_id = event.data.get("id")
        if clerk_user_id:
            await svc.delete(clerk_user_id)
    else:
        logger.info("welth.webhook.ignored", event_type=event.type)
        return {"status": "ignored"}

    logger.info("welth.webhook.processed", event_type=event.type)
    return {"status": "processed"}

import asyncio
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth
from pydantic import BaseModel

from .firebase import FirebaseDB, get_firestore_db, get_push_client
from .join_requests.dispatcher import FanOutDispatcher
from .join_requests.event_processor import JoinRequestEventProcessor
from .join_requests.resolver import RecipientResolver

logger = logging.getLogger(__name__)

security = HTTPBearer(scheme_name='Authorization', auto_error=False)


class CallerIdentity(BaseModel):
    uid: str
    email: Optional[str] = None


async def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CallerIdentity]:
    """
    Verify the caller's Firebase ID token.

    Returns None for anonymous requests or tokens that fail verification;
    endpoints decide how to treat an unauthenticated caller.
    """
    if credentials is None:
        return None

    try:
        decoded = await asyncio.to_thread(
            auth.verify_id_token, credentials.credentials, app=FirebaseDB().get_app()
        )
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError,
            auth.RevokedIdTokenError, auth.UserDisabledError, auth.CertificateFetchError) as e:
        logger.warning(f"Rejected ID token: {str(e)}")
        return None

    return CallerIdentity(uid=decoded["uid"], email=decoded.get("email"))


def get_event_processor(
    firestore_db=Depends(get_firestore_db),
    push_client=Depends(get_push_client),
) -> JoinRequestEventProcessor:
    return JoinRequestEventProcessor(
        resolver=RecipientResolver(firestore_db),
        dispatcher=FanOutDispatcher(firestore_db, push_client),
    )

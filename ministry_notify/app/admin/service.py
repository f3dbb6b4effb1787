import asyncio
import logging
from typing import Any, Dict, Optional

import google.cloud.firestore
from firebase_admin import firestore

from ..config import Settings, settings as default_settings
from ..dependencies import CallerIdentity
from ..errors import CallableError
from ..service_env import Environment

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def is_allowlisted(caller: CallerIdentity, settings: Settings) -> bool:
    allowlist = {entry.strip().lower() for entry in settings.admin_allowlist if entry.strip()}
    if caller.uid.lower() in allowlist:
        return True
    return bool(caller.email) and caller.email.strip().lower() in allowlist


async def promote_to_admin(caller: Optional[CallerIdentity],
                           firestore_db: google.cloud.firestore.Client,
                           settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Grant the admin role to the caller's user profile and linked member.

    Raises:
        CallableError: unauthenticated, permission-denied or failed-precondition;
            nothing is written when any check fails.
    """
    settings = settings or default_settings

    if caller is None:
        raise CallableError("unauthenticated", "Sign in required.")

    if not (is_allowlisted(caller, settings) or Environment.is_test_environment()):
        logger.warning(f"promoteToAdmin denied for {caller.uid}")
        raise CallableError("permission-denied", "Not allowed.")

    user_ref = firestore_db.collection(settings.users_collection).document(caller.uid)
    user = await asyncio.to_thread(user_ref.get)
    if not user.exists:
        raise CallableError("failed-precondition", "User profile does not exist.")

    member_id = (user.to_dict() or {}).get('memberId')
    member_id = member_id.strip() if isinstance(member_id, str) else ""

    # roles are stored as an array used like a set; ArrayUnion skips present values
    batch = firestore_db.batch()
    batch.update(user_ref, {'roles': firestore.ArrayUnion([ADMIN_ROLE])})
    if member_id:
        member_ref = firestore_db.collection(settings.members_collection).document(member_id)
        batch.set(member_ref, {'roles': firestore.ArrayUnion([ADMIN_ROLE])}, merge=True)
    await asyncio.to_thread(batch.commit)

    logger.info(f"Granted {ADMIN_ROLE} role to user {caller.uid} (member {member_id or '-'})")
    return {
        'uid': caller.uid,
        'memberId': member_id or None,
        'roles': [ADMIN_ROLE],
    }

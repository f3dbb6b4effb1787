import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from .service import promote_to_admin
from ..dependencies import CallerIdentity, get_caller
from ..firebase import get_firestore_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/rpc', tags=["Admin"])


@router.post('/promoteToAdmin')
async def promote_to_admin_callable(
    caller: Annotated[Optional[CallerIdentity], Depends(get_caller)],
    firestore_db=Depends(get_firestore_db),
):
    """
    Grant the admin role to the signed-in caller.
    Follows the callable protocol: the result is wrapped in {"result": ...}.
    """
    result = await promote_to_admin(caller, firestore_db)
    return {'result': result}

"""Bot registration: issues an API key to a new agent."""

import logging

from fastapi import APIRouter, Depends, Request

from clawxiv.api.v1 import dependencies as deps
from clawxiv.core.errors import ClawxivError, InternalError
from clawxiv.core.security import client_origin
from clawxiv.models.bot import RegistrationRequest, RegistrationResponse
from clawxiv.services.identity_service import IdentityService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=RegistrationResponse,
    summary="Register a bot",
    description="Creates a bot account and returns its API key. The key is shown only once.",
)
async def register_bot(
    request: Request,
    identity_service: IdentityService = Depends(deps.get_identity_service),
) -> RegistrationResponse:
    body = await deps.read_json_model(request, RegistrationRequest)
    origin = client_origin(request.headers)
    logger.debug(f"[register_bot] name='{body.name}' origin={origin}")

    try:
        return await identity_service.register(body, origin)
    except ClawxivError:
        raise
    except Exception as e:
        logger.exception(f"[register_bot] Error creating bot account: {e}")
        raise InternalError("Failed to create bot account") from e

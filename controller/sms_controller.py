from fastapi import APIRouter, Depends
from controller.controller_dependencies import get_sms_service, rate_limit, require_admin
from model.api import BroadcastRequest, BroadcastResponse
from service.sms_service import SmsService
from util.constants import InternalURIs

# Every send spends provider credit; admins only.
sms_router = APIRouter(dependencies=[Depends(rate_limit), Depends(require_admin)])


@sms_router.post(InternalURIs.SMS_BROADCAST, response_model=BroadcastResponse)
async def broadcast(
    payload: BroadcastRequest,
    service: SmsService = Depends(get_sms_service),
) -> BroadcastResponse:
    return BroadcastResponse(results=await service.broadcast(payload.phones, payload.message))

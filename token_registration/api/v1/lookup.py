from fastapi import APIRouter, Depends, HTTPException, Query

from token_registration.api.v1.presenters import member_to_schema, session_to_schema
from token_registration.api.v1.schemas import MemberSchema, RegistrationStatusSchema, SessionSchema
from token_registration.application.exceptions import BackendBusyError, BackendError
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.application.use_cases.member_search import MemberSearchUseCase
from token_registration.application.use_cases.registration_status import RegistrationStatusUseCase
from token_registration.wiring.dependencies import (
    get_backend,
    get_member_search_use_case,
    get_registration_status_use_case,
)

router = APIRouter()


@router.get("/registration-status", response_model=RegistrationStatusSchema)
async def registration_status(
    uc: RegistrationStatusUseCase = Depends(get_registration_status_use_case),
):
    status = await uc.check_status()
    return RegistrationStatusSchema(is_open=status.is_open, message=status.message, last_checked=status.last_checked)


@router.get("/members/search", response_model=list[MemberSchema])
async def search_members(
    branch: str = Query(...),
    phone: str = Query(...),
    uc: MemberSearchUseCase = Depends(get_member_search_use_case),
):
    members = await uc.search(branch, phone, immediate=True)
    if uc.error:
        raise HTTPException(status_code=502, detail=uc.error)
    return [member_to_schema(m) for m in members or []]


@router.get("/branches/{branch}/schedules", response_model=list[SessionSchema])
async def branch_schedules(
    branch: str,
    backend: RegistrationBackendPort = Depends(get_backend),
):
    try:
        sessions = await backend.fetch_schedules(branch)
    except BackendBusyError:
        raise HTTPException(status_code=503, detail="Schedule source is busy, try again shortly")
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [session_to_schema(s) for s in sessions]

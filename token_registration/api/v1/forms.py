from fastapi import APIRouter, HTTPException, Response

from token_registration.api.v1.presenters import form_view, member_from_schema, outcome_to_schema
from token_registration.api.v1.schemas import (
    FormViewSchema,
    LiveRequestSchema,
    PickRequestSchema,
    SelectMemberRequestSchema,
    SubmitRequestSchema,
    SubmitResponseSchema,
)
from token_registration.application.use_cases.registration_form import RegistrationForm
from token_registration.wiring.dependencies import close_form, create_form, get_form

router = APIRouter()


def _form_or_404(form_id: str) -> RegistrationForm:
    form = get_form(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


@router.post("/forms", response_model=FormViewSchema, status_code=201)
async def open_form():
    return form_view(create_form())


@router.get("/forms/{form_id}", response_model=FormViewSchema)
async def read_form(form_id: str):
    return form_view(_form_or_404(form_id))


@router.delete("/forms/{form_id}", status_code=204)
async def delete_form(form_id: str) -> Response:
    if not close_form(form_id):
        raise HTTPException(status_code=404, detail="Form not found")
    return Response(status_code=204)


@router.post("/forms/{form_id}/member", response_model=FormViewSchema)
async def select_member(form_id: str, req: SelectMemberRequestSchema):
    form = _form_or_404(form_id)
    form.select_member(member_from_schema(req.member), req.branch, fetch_now=False)
    await form.schedule_feed.refetch()
    return form_view(form)


@router.delete("/forms/{form_id}/member", response_model=FormViewSchema)
async def clear_member(form_id: str):
    form = _form_or_404(form_id)
    form.clear_member()
    return form_view(form)


@router.post("/forms/{form_id}/live", response_model=FormViewSchema)
async def set_live(form_id: str, req: LiveRequestSchema):
    form = _form_or_404(form_id)
    if req.enabled:
        form.schedule_feed.enable_live()
    else:
        form.schedule_feed.disable_live()
    return form_view(form)


@router.put("/forms/{form_id}/slots/{slot_index}", response_model=FormViewSchema)
async def pick_slot(form_id: str, slot_index: int, req: PickRequestSchema):
    form = _form_or_404(form_id)
    result = form.pick(slot_index, req.activity_id)
    if not result.ok:
        raise HTTPException(status_code=409, detail=result.reason.value if result.reason else "rejected")
    return form_view(form)


@router.delete("/forms/{form_id}/slots/{slot_index}", response_model=FormViewSchema)
async def clear_slot(form_id: str, slot_index: int):
    form = _form_or_404(form_id)
    form.clear_slot(slot_index)
    return form_view(form)


@router.delete("/forms/{form_id}/slots", response_model=FormViewSchema)
async def clear_slots(form_id: str):
    form = _form_or_404(form_id)
    form.clear_slots()
    return form_view(form)


@router.post("/forms/{form_id}/submit", response_model=SubmitResponseSchema)
async def submit(form_id: str, req: SubmitRequestSchema | None = None):
    form = _form_or_404(form_id)
    req = req or SubmitRequestSchema()
    blocked = None if req.new_series else form.submit_blocker()
    series = form.submit(new_series=req.new_series)
    if series is None:
        return SubmitResponseSchema(
            started=False,
            blocked_reason=blocked or form.submit_blocker(),
            phase=form.submitter.phase.value,
            outcome=outcome_to_schema(form.submitter.outcome),
        )

    outcome = await series.wait() if req.wait else None
    return SubmitResponseSchema(
        started=True,
        idempotency_key=series.idempotency_key,
        phase=form.submitter.phase.value,
        outcome=outcome_to_schema(outcome),
    )


@router.post("/forms/{form_id}/reset", response_model=FormViewSchema)
async def reset_submission(form_id: str):
    form = _form_or_404(form_id)
    form.submitter.reset()
    return form_view(form)

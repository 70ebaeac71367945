from token_registration.api.v1.schemas import (
    CategoryCountSchema,
    ExistingRegistrationSchema,
    FormViewSchema,
    MemberSchema,
    OutcomeSchema,
    SelectionSchema,
    SessionSchema,
)
from token_registration.application.use_cases.registration_form import RegistrationForm
from token_registration.domain.entities.member import ExistingRegistration, Member
from token_registration.domain.entities.selection import Selection
from token_registration.domain.entities.session import Session
from token_registration.domain.entities.submission_outcome import SubmissionOutcome


def member_to_schema(member: Member) -> MemberSchema:
    return MemberSchema(
        member_id=member.member_id,
        branch=member.branch,
        name=member.name,
        birthdate=member.birthdate,
        parent_name=member.parent_name,
        contact=member.contact,
        registration_status=member.registration_status,
        existing_registrations=[
            ExistingRegistrationSchema(activity_name=r.activity_name, token=r.token)
            for r in member.existing_registrations
        ],
    )


def member_from_schema(schema: MemberSchema) -> Member:
    return Member(
        member_id=schema.member_id,
        branch=schema.branch,
        name=schema.name,
        birthdate=schema.birthdate,
        parent_name=schema.parent_name,
        contact=schema.contact,
        registration_status=schema.registration_status or None,
        existing_registrations=tuple(
            ExistingRegistration(activity_name=r.activity_name, token=r.token) for r in schema.existing_registrations
        ),
    )


def session_to_schema(session: Session) -> SessionSchema:
    return SessionSchema(
        activity_id=session.id,
        branch=session.branch,
        class_category=session.category,
        activity_name=session.display_name,
        total_slot=session.total_capacity,
        booked_slot=session.booked_count,
        available_slot=session.available_count,
    )


def selection_to_schema(selection: Selection | None) -> SelectionSchema | None:
    if selection is None:
        return None
    return SelectionSchema(
        class_category=selection.category,
        activity_id=selection.session_id,
        activity_name=selection.display_name,
    )


def outcome_to_schema(outcome: SubmissionOutcome | None) -> OutcomeSchema | None:
    if outcome is None:
        return None
    return OutcomeSchema(
        kind=outcome.kind.value,
        idempotency_key=outcome.idempotency_key,
        tracking_id=outcome.tracking_id,
        conflicts=list(outcome.conflicts),
        reason=outcome.reason,
        attempts=outcome.attempts,
        message=outcome.user_message(),
    )


def form_view(form: RegistrationForm) -> FormViewSchema:
    engine = form.engine
    feed = form.schedule_feed
    progress = form.submitter.progress
    return FormViewSchema(
        form_id=form.form_id,
        member=member_to_schema(form.member) if form.member else None,
        branch=form.branch,
        live=feed.live,
        last_updated=feed.last_updated,
        schedule_error=feed.error,
        slots=[selection_to_schema(s) for s in engine.slots()],
        category_counts=[
            CategoryCountSchema(category=c.category, count=c.count, max_reached=c.max_reached)
            for c in engine.category_counts()
        ],
        progress_text=engine.progress_text(),
        can_add_more=engine.can_add_more(),
        is_valid=engine.validate(),
        available_categories=form.available_categories(),
        sessions=[session_to_schema(s) for s in feed.sessions if s.has_room],
        phase=form.submitter.phase.value,
        progress_message=progress.user_message() if progress else None,
        outcome=outcome_to_schema(form.submitter.outcome),
        submit_blocker=form.submit_blocker(),
        cleared_by_conflict=list(form.cleared_by_conflict),
    )

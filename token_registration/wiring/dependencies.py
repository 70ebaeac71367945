import logging
import time
import uuid

from token_registration.application.ports.outcome_store import OutcomeStorePort
from token_registration.application.ports.registration_backend import RegistrationBackendPort
from token_registration.application.use_cases.member_search import MemberSearchUseCase
from token_registration.application.use_cases.registration_form import RegistrationForm
from token_registration.application.use_cases.registration_status import RegistrationStatusUseCase
from token_registration.application.use_cases.schedule_feed import ScheduleFeedUseCase
from token_registration.application.use_cases.submit_registration import SubmitRegistrationUseCase
from token_registration.core.config import settings
from token_registration.infrastructure.backend.apps_script_client import AppsScriptBackend
from token_registration.infrastructure.backend.mock_backend import MockRegistrationBackend
from token_registration.infrastructure.store.json_outcome_store import JsonOutcomeStore
from token_registration.infrastructure.store.memory_outcome_store import MemoryOutcomeStore


_backend: RegistrationBackendPort | None = None
_outcome_store: OutcomeStorePort | None = None
_status_use_case: RegistrationStatusUseCase | None = None
_forms: dict[str, RegistrationForm] = {}
_last_seen: dict[str, float] = {}


def _is_local() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


def get_backend() -> RegistrationBackendPort:
    global _backend
    if _backend is None:
        logger = logging.getLogger(__name__)
        if settings.APPS_SCRIPT_URL:
            logger.info("Using AppsScriptBackend")
            _backend = AppsScriptBackend()
        elif _is_local():
            logger.info("Using MockRegistrationBackend (APPS_SCRIPT_URL missing, ENV=dev/local)")
            _backend = MockRegistrationBackend.with_sample_data()
        else:
            raise ValueError("APPS_SCRIPT_URL is required outside dev/local environments.")
    return _backend


def get_outcome_store() -> OutcomeStorePort:
    global _outcome_store
    if _outcome_store is None:
        if _is_local():
            _outcome_store = JsonOutcomeStore(data_dir=settings.OUTCOME_STORE_DIR)
        else:
            _outcome_store = MemoryOutcomeStore()
    return _outcome_store


def get_registration_status_use_case() -> RegistrationStatusUseCase:
    global _status_use_case
    if _status_use_case is None:
        _status_use_case = RegistrationStatusUseCase(backend=get_backend())
    return _status_use_case


def get_member_search_use_case() -> MemberSearchUseCase:
    return MemberSearchUseCase(backend=get_backend())


def create_form() -> RegistrationForm:
    backend = get_backend()
    form = RegistrationForm(
        form_id=uuid.uuid4().hex,
        schedule_feed=ScheduleFeedUseCase(backend=backend),
        submitter=SubmitRegistrationUseCase(
            backend=backend,
            outcome_store=get_outcome_store(),
            delays_ms=settings.SUBMIT_BACKOFF_DELAYS_MS,
        ),
    )
    evict_idle_forms()
    _forms[form.form_id] = form
    _last_seen[form.form_id] = time.monotonic()
    return form


def get_form(form_id: str) -> RegistrationForm | None:
    evict_idle_forms()
    form = _forms.get(form_id)
    if form is not None:
        _last_seen[form_id] = time.monotonic()
    return form


def evict_idle_forms(now: float | None = None) -> list[str]:
    """Close forms untouched for longer than FORM_IDLE_TTL_SECONDS so their pollers stop."""
    now = time.monotonic() if now is None else now
    stale = [
        form_id
        for form_id, seen in _last_seen.items()
        if now - seen > settings.FORM_IDLE_TTL_SECONDS
    ]
    for form_id in stale:
        logging.getLogger(__name__).info("Evicting idle form", extra={"form_id": form_id})
        close_form(form_id)
    return stale


def close_form(form_id: str) -> bool:
    form = _forms.pop(form_id, None)
    _last_seen.pop(form_id, None)
    if form is None:
        return False
    form.close()
    return True


def configure(
    backend: RegistrationBackendPort | None = None,
    outcome_store: OutcomeStorePort | None = None,
) -> None:
    """Swap in adapters, mainly for tests."""
    global _backend, _outcome_store, _status_use_case
    _forms.clear()
    _last_seen.clear()
    _backend = backend
    _outcome_store = outcome_store
    _status_use_case = None


async def shutdown() -> None:
    for form_id in list(_forms):
        close_form(form_id)
    if _backend is not None:
        await _backend.aclose()
    configure()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from token_registration.api.v1.forms import router as forms_router
from token_registration.api.v1.lookup import router as lookup_router
from token_registration.core.config import settings
from token_registration.wiring.dependencies import shutdown


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("form_id", "idempotency_key", "attempt", "branch", "outcome", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown()


app = FastAPI(title="Token Registration", version="1.0.0", lifespan=lifespan)

app.include_router(lookup_router, prefix="/api/v1", tags=["lookup"])
app.include_router(forms_router, prefix="/api/v1", tags=["forms"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}

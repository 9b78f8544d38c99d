# This project was developed with assistance from AI tools.
"""Term-sheet and application artifact rendering.

Artifact keys are derived from the loan number so the transition can
store them before rendering happens. Rendering itself runs after commit
as a fire-and-forget task; a failed render is logged and leaves the
committed transition in place.
"""

import json
import logging
from typing import Protocol

from .background import fire_and_forget
from .storage import get_storage_service

logger = logging.getLogger(__name__)


def term_sheet_key(loan_number: str) -> str:
    return f"term-sheets/{loan_number}.json"


def application_key(loan_number: str) -> str:
    return f"applications/{loan_number}.json"


class DocumentRenderer(Protocol):
    async def render_term_sheet(self, loan: dict, quote: dict, key: str) -> str: ...

    async def render_application(self, loan: dict, data: dict, key: str) -> str: ...


class StorageArtifactRenderer:
    """Writes a JSON snapshot of the artifact content to object storage."""

    async def _store(self, key: str, body: dict) -> str:
        payload = json.dumps(body, sort_keys=True, default=str).encode()
        await get_storage_service().put_object(payload, key, "application/json")
        logger.info("Rendered artifact %s (%d bytes)", key, len(payload))
        return key

    async def render_term_sheet(self, loan: dict, quote: dict, key: str) -> str:
        return await self._store(key, {"kind": "term_sheet", "loan": loan, "quote": quote})

    async def render_application(self, loan: dict, data: dict, key: str) -> str:
        return await self._store(key, {"kind": "application", "loan": loan, "application": data})


_renderer: DocumentRenderer = StorageArtifactRenderer()


def get_renderer() -> DocumentRenderer:
    return _renderer


def set_renderer(renderer: DocumentRenderer) -> None:
    """Swap the rendering backend (app startup, tests)."""
    global _renderer  # noqa: PLW0603
    _renderer = renderer


def render_full_application_later(loan: dict, quote: dict, application: dict) -> None:
    """Queue both artifacts for a submitted application. Call only after commit."""
    renderer = get_renderer()
    number = loan["loan_number"]
    fire_and_forget(
        renderer.render_application(loan, application, application_key(number)),
        name=f"render-application-{number}",
    )
    fire_and_forget(
        renderer.render_term_sheet(loan, quote, term_sheet_key(number)),
        name=f"render-term-sheet-{number}",
    )

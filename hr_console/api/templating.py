from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates

from hr_console.core.notify import pop_flashes

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def matches(term: str, *values: Any) -> bool:
    """Case-insensitive substring search over a row's display columns."""
    if not term:
        return True
    term = term.strip().lower()
    return any(term in str(v).lower() for v in values if v is not None)


def render(request: Request, name: str, context: dict[str, Any] | None = None, status_code: int = 200):
    ctx = {"request": request, "flashes": pop_flashes(request.session)}
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)

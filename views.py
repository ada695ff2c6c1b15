from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


class ViewRenderer:
    """Renders catalog pages by template name, or redirects."""

    def __init__(self, directory: Path = TEMPLATE_DIR):
        self.templates = Jinja2Templates(directory=str(directory))

    def render(self, request: Request, name: str, context: Optional[Dict[str, Any]] = None, status_code: int = 200):
        return self.templates.TemplateResponse(
            request, f"{name}.html", context or {}, status_code=status_code
        )

    def redirect(self, url: str) -> RedirectResponse:
        return RedirectResponse(url, status_code=302)


views = ViewRenderer()

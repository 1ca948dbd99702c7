from fastapi import Request
from fastapi.templating import Jinja2Templates

from .config import settings
from .models import Category
from .schemas import UserOut

templates = Jinja2Templates(directory=settings.TEMPLATES_DIR)
templates.env.globals["categories"] = Category.values()


def render(request: Request, web, name: str, context: dict = None, status_code: int = 200):
    """
    Render ``name`` with the current identity and any pending flash messages.

    Flashes are consumed here, so a message shows on exactly one page.
    """
    flashes = web.pop_flashes()
    payload = {
        "request": request,
        "current_user": UserOut.model_validate(web.user) if web.user else None,
        "success": flashes["success"],
        "error": flashes["error"],
    }
    payload.update(context or {})
    return web.apply(templates.TemplateResponse(request, name, payload, status_code=status_code))

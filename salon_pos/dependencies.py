from datetime import date

from fastapi import HTTPException, Request
from fastapi.templating import Jinja2Templates

from salon_pos.services.notification_service import notice_from_request
from salon_pos.time_utils import business_today


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client:
        return request.client.host
    return None


def parse_date_range(request: Request) -> tuple[date, date]:
    start_raw = request.query_params.get('start', '').strip()
    end_raw = request.query_params.get('end', '').strip()
    today = business_today()
    try:
        start_date = date.fromisoformat(start_raw) if start_raw else today
        end_date = date.fromisoformat(end_raw) if end_raw else today
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='Invalid date filter') from exc
    return start_date, end_date


def render(request: Request, template_name: str, context: dict | None = None, status_code: int = 200):
    payload = {
        'principal': getattr(request.state, 'principal', None),
        'notice': notice_from_request(request),
    }
    payload.update(context or {})
    return get_templates(request).TemplateResponse(request, template_name, payload, status_code=status_code)

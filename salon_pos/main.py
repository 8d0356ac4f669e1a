import logging
from decimal import Decimal
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from salon_pos.config import settings
from salon_pos.routers import auth, catalog, functions, reports, sales, staff
from salon_pos.security.csrf import csrf_input, install_csrf_cookie_middleware
from salon_pos.security.headers import install_security_headers
from salon_pos.security.sessions import install_auth_session_middleware
from salon_pos.time_utils import to_local


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


configure_logging()

app = FastAPI(title='Salon POS')

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'
app.state.templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


def _money(value) -> str:
    amount = Decimal(str(value or 0)).quantize(Decimal('0.01'))
    return f'{settings.currency_symbol}{amount:,.2f}'


def _local_time(value, fmt: str = '%Y-%m-%d %H:%M') -> str:
    local = to_local(value)
    return local.strftime(fmt) if local else ''


app.state.templates.env.globals['csrf_input'] = csrf_input
app.state.templates.env.filters['money'] = _money
app.state.templates.env.filters['local_time'] = _local_time

install_security_headers(app)
install_csrf_cookie_middleware(app)
install_auth_session_middleware(app)

app.include_router(auth.router)
app.include_router(reports.router)
app.include_router(sales.router)
app.include_router(catalog.router)
app.include_router(staff.router)
app.include_router(functions.router)


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code != 404:
        return await http_exception_handler(request, exc)
    return app.state.templates.TemplateResponse(
        request,
        'not_found.html',
        {'principal': getattr(request.state, 'principal', None), 'notice': None, 'path': request.url.path},
        status_code=404,
    )


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'

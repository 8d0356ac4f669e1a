"""Double-submit CSRF protection for the HTML forms.

Every response carries a readable ``csrf_token`` cookie; unsafe requests must
echo it back either as a form field or as an ``X-CSRF-Token`` header.
"""

from __future__ import annotations

import secrets

from fastapi import HTTPException, Request, status
from markupsafe import Markup, escape

from salon_pos.config import settings

CSRF_COOKIE_NAME = 'csrf_token'
CSRF_FORM_FIELD = 'csrf_token'
CSRF_HEADER = 'x-csrf-token'
SAFE_METHODS = {'GET', 'HEAD', 'OPTIONS'}


def install_csrf_cookie_middleware(app) -> None:
    @app.middleware('http')
    async def csrf_cookie_middleware(request: Request, call_next):
        csrf_token = request.cookies.get(CSRF_COOKIE_NAME) or secrets.token_urlsafe(24)
        request.state.csrf_token = csrf_token

        response = await call_next(request)
        if request.cookies.get(CSRF_COOKIE_NAME) != csrf_token:
            response.set_cookie(
                key=CSRF_COOKIE_NAME,
                value=csrf_token,
                httponly=False,
                secure=settings.session_cookie_secure,
                samesite=settings.session_cookie_samesite,
            )
        return response


def csrf_input(request: Request) -> Markup:
    token = getattr(request.state, 'csrf_token', '')
    return Markup(f'<input type="hidden" name="{CSRF_FORM_FIELD}" value="{escape(token)}">')


async def _submitted_token(request: Request) -> str:
    header_token = request.headers.get(CSRF_HEADER)
    if header_token:
        return header_token
    content_type = request.headers.get('content-type', '')
    if not content_type.startswith(('application/x-www-form-urlencoded', 'multipart/form-data')):
        return ''
    form = await request.form()
    return str(form.get(CSRF_FORM_FIELD) or '')


async def verify_csrf(request: Request) -> None:
    if request.method in SAFE_METHODS:
        return

    submitted = await _submitted_token(request)
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME) or ''
    if not submitted or not cookie_token or not secrets.compare_digest(submitted, cookie_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Invalid CSRF token')

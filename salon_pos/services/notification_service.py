from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse

LEVEL_SUCCESS = 'success'
LEVEL_ERROR = 'error'
LEVEL_WARNING = 'warning'
_LEVELS = {LEVEL_SUCCESS, LEVEL_ERROR, LEVEL_WARNING}


@dataclass(frozen=True)
class Notice:
    message: str
    level: str = LEVEL_SUCCESS

    @property
    def title(self) -> str:
        return 'Error' if self.level == LEVEL_ERROR else 'Success' if self.level == LEVEL_SUCCESS else 'Warning'


def notice_url(path: str, message: str, level: str = LEVEL_SUCCESS, **params: object) -> str:
    query = {key: value for key, value in params.items() if value not in (None, '')}
    query['notice'] = message
    query['level'] = level if level in _LEVELS else LEVEL_SUCCESS
    separator = '&' if '?' in path else '?'
    return f'{path}{separator}{urlencode(query)}'


def redirect_with_notice(path: str, message: str, level: str = LEVEL_SUCCESS, **params: object) -> RedirectResponse:
    return RedirectResponse(notice_url(path, message, level, **params), status_code=303)


def notice_from_request(request: Request) -> Notice | None:
    message = request.query_params.get('notice', '').strip()
    if not message:
        return None
    level = request.query_params.get('level', LEVEL_SUCCESS)
    return Notice(message=message, level=level if level in _LEVELS else LEVEL_SUCCESS)

"""
Helpers for file downloads served by the API (CSV export).
"""

from email.message import Message

import httpx


def attachment_filename(resp: httpx.Response, default: str) -> str:
    """Filename from the response's ``Content-Disposition`` header.

    Falls back to ``default`` when the header is missing or names no file.
    Directory parts are stripped so the name is safe to offer to the browser.
    """
    header = resp.headers.get("content-disposition")
    if not header:
        return default
    message = Message()
    message["content-disposition"] = header
    filename = message.get_filename()
    if not filename:
        return default
    filename = filename.replace("\\", "/").rsplit("/", 1)[-1].strip()
    return filename or default

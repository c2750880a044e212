from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, RedirectResponse, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from sfss.core.config import STYLESHEET_PATH
from sfss.core.deps import AppSettingsDep, StoreDep
from sfss.core.settings import AppSettings
from sfss.objects.errors import IngestRejectedError, StorageError
from sfss.objects.gate import normalize_password
from sfss.objects.models import Found, IngestResult
from sfss.objects.service import ObjectStore
from sfss.share.views import (
    base_context,
    decode_for_view,
    pick_language,
    share_links,
    templates,
    with_query,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["share"])

# Starlette's wording for a form field over max_part_size.
_FIELD_TOO_LARGE = "exceeded maximum size"


class UploadReceipt(BaseModel):
    code: str
    url: str
    raw_url: str
    password_active: bool
    created: bool
    content_type: str
    size: int


@dataclass(frozen=True)
class UploadForm:
    data: bytes
    filename: Optional[str] = None
    password: Optional[str] = None
    content_type: Optional[str] = None
    lang: Optional[str] = None


# ---------------------------------------------------------------------
# Upload helpers
# ---------------------------------------------------------------------

def _field_cap(limit: int) -> int:
    # Urlencoded text can take up to 3 bytes on the wire per payload byte.
    return 3 * (limit + 1)


def _text_field(form: FormData, name: str) -> Optional[str]:
    value = form.get(name)
    return value if isinstance(value, str) else None


async def _read_upload(request: Request, limit: int) -> UploadForm:
    """
    Parse the upload form and pull the payload into memory.

    Pasted text arrives as a plain form field, so Starlette's per-field cap
    is raised to match the upload limit. A file part wins over the
    pasted-text field when both are sent; at most limit + 1 bytes of it
    are read.
    """
    try:
        form = await request.form(max_part_size=_field_cap(limit))
    except StarletteHTTPException as exc:
        if exc.status_code == 400 and _FIELD_TOO_LARGE in str(exc.detail):
            logger.info("[Upload] rejected oversize form field: %s", exc.detail)
            raise HTTPException(
                status_code=413,
                detail=f"Uploaded content exceeds the limit of {limit} bytes.",
            ) from exc
        raise

    try:
        file = form.get("file")
        if isinstance(file, UploadFile) and (file.filename or file.size):
            data = await file.read(limit + 1)
            filename = file.filename or None
        else:
            text = _text_field(form, "text")
            data = text.encode("utf-8") if text else b""
            filename = None
        return UploadForm(
            data=data,
            filename=filename,
            password=_text_field(form, "password"),
            content_type=_text_field(form, "content_type"),
            lang=_text_field(form, "lang"),
        )
    finally:
        await form.close()


async def _ingest(store: ObjectStore, form: UploadForm) -> IngestResult:
    try:
        return await run_in_threadpool(store.ingest, form.data, form.password, form.content_type, form.filename)
    except IngestRejectedError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=500, detail="Storage failure while saving upload.") from exc


def _password_in_force(result: IngestResult, password: Optional[str]) -> Optional[str]:
    # Dedup keeps the first uploader's gate; only echo a password that actually opens the object.
    if result.created and result.password_active:
        return normalize_password(password)
    return None


def _receipt(app: AppSettings, result: IngestResult, form: UploadForm) -> UploadReceipt:
    links = share_links(app, result.code, _password_in_force(result, form.password), pick_language(app, form.lang))
    return UploadReceipt(
        code=result.code,
        url=links["view_url"],
        raw_url=links["raw_url"],
        password_active=result.password_active,
        created=result.created,
        content_type=result.object.content_type,
        size=result.object.size,
    )


# ---------------------------------------------------------------------
# Pages + static
# ---------------------------------------------------------------------

@router.get("/", response_class=HTMLResponse)
async def root(request: Request, app: AppSettingsDep):
    return templates.TemplateResponse(request, "index.html", base_context(app))


@router.get("/style.css")
async def style():
    return FileResponse(STYLESHEET_PATH, media_type="text/css")


@router.get("/hljs.js")
async def hljs(app: AppSettingsDep):
    if app.hljs_path:
        return FileResponse(app.hljs_path, media_type="text/javascript")
    return RedirectResponse(app.hljs_url, status_code=307)


@router.get("/favicon.ico")
async def favicon():
    return Response(status_code=404)


# ---------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------

@router.post("/upload", response_class=HTMLResponse)
async def upload(request: Request, store: StoreDep, app: AppSettingsDep):
    form = await _read_upload(request, store.max_upload_bytes)
    result = await _ingest(store, form)
    receipt = _receipt(app, result, form)
    ctx = base_context(app)
    ctx.update(
        {
            "code": receipt.code,
            "view_url": receipt.url,
            "raw_url": receipt.raw_url,
            "password_active": receipt.password_active,
            "password": _password_in_force(result, form.password),
            "created": receipt.created,
        }
    )
    return templates.TemplateResponse(request, "upload.html", ctx)


@router.post("/upload/api", response_class=PlainTextResponse)
async def api_upload(request: Request, store: StoreDep, app: AppSettingsDep):
    form = await _read_upload(request, store.max_upload_bytes)
    result = await _ingest(store, form)
    return PlainTextResponse(_receipt(app, result, form).url + "\n")


@router.post("/upload/json", response_model=UploadReceipt)
async def json_upload(request: Request, store: StoreDep, app: AppSettingsDep):
    form = await _read_upload(request, store.max_upload_bytes)
    result = await _ingest(store, form)
    return _receipt(app, result, form)


# ---------------------------------------------------------------------
# Retrieval (registered last: /{code} would shadow the routes above)
# ---------------------------------------------------------------------

_FAILURE_MESSAGES = {
    403: "This item is password protected. Supply the correct password to open it.",
    404: "No such item.",
    500: "The item could not be read right now.",
}


@router.get("/{code}/raw")
def raw(code: str, store: StoreDep, password: Optional[str] = None):
    result = store.resolve(code, password, want_raw=True)
    if not isinstance(result, Found):
        raise HTTPException(status_code=result.http_status, detail=_FAILURE_MESSAGES[result.http_status])

    return Response(
        content=result.content,
        media_type=result.content_type,
        headers={
            "Content-Disposition": f'inline; filename="{result.object.code}"',
            "X-Content-Type-Options": "nosniff",
            # Uploaded HTML/SVG must never run as this origin.
            "Content-Security-Policy": "sandbox",
            "Cache-Control": "private, max-age=3600",
        },
    )


@router.get("/{code}", response_class=HTMLResponse)
def view(
    request: Request,
    code: str,
    store: StoreDep,
    app: AppSettingsDep,
    password: Optional[str] = None,
    lang: Optional[str] = None,
):
    result = store.resolve(code, password, want_raw=False)
    ctx = base_context(app)
    ctx["code"] = code

    if not isinstance(result, Found):
        status = result.http_status
        ctx.update({"status": status, "message": _FAILURE_MESSAGES[status], "needs_password": status == 403})
        return templates.TemplateResponse(request, "error.html", ctx, status_code=status)

    obj = result.object
    gate_password = password if obj.password_active else None
    ctx.update(
        {
            "text": decode_for_view(obj),
            "content_type": obj.content_type,
            "size": obj.size,
            "created_at": obj.created_at,
            "lang": pick_language(app, lang),
            "raw_url": with_query(f"{app.webroot}{obj.code}/raw", password=gate_password),
        }
    )
    return templates.TemplateResponse(request, "view.html", ctx)

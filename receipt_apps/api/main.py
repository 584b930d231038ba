"""FastAPI wrapper for the receipt rendering and printing pipeline."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from receipt_core.config.settings import AppSettings, load_settings
from receipt_core.data.samples import sample_record
from receipt_core.orchestrator.pipeline import preview_receipt, print_template_async
from receipt_core.render.models import PrintResult, RenderResult
from receipt_core.templates.store import TemplateCache, TemplateRepository, TemplateStore
from receipt_core.utils.errors import DEFAULT_USER_MESSAGES, ReceiptError, TemplateLoadError

app = FastAPI(title="receipt-ops API", version="0.1.0")
logger = logging.getLogger("receipt.api")

REQUEST_ID_HEADER = "X-Receipt-Request-Id"

_STATUS_BY_CATEGORY = {
    "structural": 422,
    "data": 422,
    "timeout": 504,
    "transport": 502,
    "device": 502,
}
_ERROR_CODE_BY_CATEGORY = {
    "structural": "TEMPLATE_ERROR",
    "data": "DATA_ERROR",
    "timeout": "PRINTER_TIMEOUT",
    "transport": "PRINTER_UNREACHABLE",
    "device": "PRINTER_ERROR",
}

_repository_cache: dict[Path, TemplateRepository] = {}


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


class ReceiptRequest(BaseModel):
    """Body of preview and print requests; ``data`` defaults to the sample record."""

    model_config = ConfigDict(extra="forbid")

    template: dict[str, Any] | None = None
    template_id: str | None = None
    data: dict[str, Any] | None = None
    strict_markup: bool = False


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint for clients."""

    request_id = _request_id_from_request(request)
    try:
        settings = load_settings()
    except ValueError as exc:
        return _error_response(
            status_code=500,
            error_code="SETTINGS_ERROR",
            message=str(exc),
            request_id=request_id,
        )

    payload = {
        "version": app.version,
        "package_version": _package_version(),
        "languages": sorted(DEFAULT_USER_MESSAGES),
        "error_categories": sorted(_ERROR_CODE_BY_CATEGORY),
        "template_kinds": ["legacy", "segmented"],
        "receipt_width": settings.receipt_width,
        "currencies": [settings.local_currency, settings.foreign_currency],
        "mock_printer": settings.mock_printer,
    }
    return JSONResponse(status_code=200, headers={REQUEST_ID_HEADER: request_id}, content=payload)


@app.post("/v1/preview", response_model=None)
async def preview_v1(request: Request) -> JSONResponse:
    """Render a template to preview text."""

    request_id = _request_id_from_request(request)
    start = time.perf_counter()
    failure_stage = "parse_request"
    try:
        body = await _parse_body(request)
        failure_stage = "load_settings"
        settings = _load_settings_with_api_error()
        failure_stage = "resolve_template"
        template = _resolve_template(body, settings)
        _log_event(logging.INFO, "start", request_id, endpoint="preview")

        failure_stage = "render"
        result = preview_receipt(
            template,
            body.data if body.data is not None else sample_record(),
            settings=settings,
            strict_markup=body.strict_markup,
        )
    except ApiRequestError as exc:
        return _api_error(exc, request_id, failure_stage)

    if result.error is not None:
        return _failure_from_error(result.error, request_id, "render", _render_payload(result))

    _log_event(
        logging.INFO,
        "done",
        request_id,
        endpoint="preview",
        processed_segments=result.stats.processed_segments if result.stats else 0,
        total_ms=_elapsed_ms(start),
    )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={**_render_payload(result), "request_id": request_id},
    )


@app.post("/v1/print", response_model=None)
async def print_v1(request: Request) -> JSONResponse:
    """Render a template and send it to the configured printer."""

    request_id = _request_id_from_request(request)
    start = time.perf_counter()
    failure_stage = "parse_request"
    try:
        body = await _parse_body(request)
        failure_stage = "load_settings"
        settings = _load_settings_with_api_error()
        failure_stage = "resolve_template"
        template = _resolve_template(body, settings)
        _log_event(
            logging.INFO,
            "start",
            request_id,
            endpoint="print",
            mock_printer=settings.mock_printer,
        )

        failure_stage = "print"
        result = await print_template_async(
            template,
            body.data if body.data is not None else sample_record(),
            settings=settings,
        )
    except ApiRequestError as exc:
        return _api_error(exc, request_id, failure_stage)

    if result.error is not None:
        return _failure_from_error(result.error, request_id, "print", _print_payload(result))

    _log_event(logging.INFO, "done", request_id, endpoint="print", total_ms=_elapsed_ms(start))
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={**_print_payload(result), "request_id": request_id},
    )


async def _parse_body(request: Request) -> ReceiptRequest:
    try:
        raw = await request.json()
    except json.JSONDecodeError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_JSON",
            message="request body must be JSON",
        ) from exc

    try:
        body = ReceiptRequest.model_validate(raw)
    except ValidationError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_REQUEST",
            message="request body is invalid",
            detail={"errors": [".".join(str(part) for part in e["loc"]) for e in exc.errors()]},
        ) from exc

    if (body.template is None) == (body.template_id is None):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT_CONFLICT",
            message="provide exactly one of template or template_id",
        )
    return body


def _load_settings_with_api_error() -> AppSettings:
    try:
        return load_settings()
    except ValueError as exc:
        raise ApiRequestError(
            status_code=500,
            error_code="SETTINGS_ERROR",
            message=str(exc),
        ) from exc


def _resolve_template(body: ReceiptRequest, settings: AppSettings) -> Any:
    if body.template_id is None:
        return body.template

    repository = _get_repository(settings)
    try:
        template = repository.get(body.template_id)
    except TemplateLoadError as exc:
        raise ApiRequestError(
            status_code=422,
            error_code="TEMPLATE_ERROR",
            message=exc.error.message,
            detail={"template_id": body.template_id},
        ) from exc
    except ValueError as exc:
        raise ApiRequestError(
            status_code=500,
            error_code="TEMPLATE_STORE_ERROR",
            message=str(exc),
        ) from exc

    if template is None:
        raise ApiRequestError(
            status_code=404,
            error_code="TEMPLATE_NOT_FOUND",
            message=f"template '{body.template_id}' not found",
            detail={"template_id": body.template_id},
        )
    return template


def _get_repository(settings: AppSettings) -> TemplateRepository:
    path = settings.templates_path
    repository = _repository_cache.get(path)
    if repository is None:
        repository = TemplateRepository(
            TemplateStore(path), TemplateCache(ttl_seconds=settings.cache_ttl_seconds)
        )
        _repository_cache[path] = repository
    return repository


def _render_payload(result: RenderResult) -> dict[str, Any]:
    return result.model_dump(mode="json", exclude={"outputs", "outcome"})


def _print_payload(result: PrintResult) -> dict[str, Any]:
    payload = result.model_dump(mode="json", exclude={"render"})
    if result.render is not None:
        payload["render"] = _render_payload(result.render)
    return payload


def _failure_from_error(
    error: ReceiptError, request_id: str, failure_stage: str, payload: dict[str, Any]
) -> JSONResponse:
    error_code = _ERROR_CODE_BY_CATEGORY[error.category]
    status_code = _STATUS_BY_CATEGORY[error.category]
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code=error_code,
        status_code=status_code,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=status_code,
        error_code=error_code,
        message=error.user_message,
        request_id=request_id,
        detail={"result": payload},
    )


def _api_error(exc: ApiRequestError, request_id: str, failure_stage: str) -> JSONResponse:
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code=exc.error_code,
        status_code=exc.status_code,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=exc.status_code,
        error_code=exc.error_code,
        message=exc.message,
        request_id=request_id,
        detail=exc.detail,
    )


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _package_version() -> str:
    try:
        return importlib.metadata.version("receipt-ops")
    except importlib.metadata.PackageNotFoundError:
        return os.getenv("RECEIPT_VERSION", "unknown")


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))

"""
HTTP routes for the chronicle API.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Type, TypeVar

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from chronicle.config import Settings
from chronicle.db import DbClient
from chronicle.dependencies import (
    get_app_settings,
    get_db_client,
    get_storage_client,
)
from chronicle.errors import NotFoundError, ValidationError
from chronicle.schemas import (
    Envelope,
    FeedbackCreated,
    FeedbackCreateRequest,
    HistoryCreated,
    HistoryCreateRequest,
    HistoryItem,
    ProfileData,
    ProfileUpdated,
)
from chronicle.storage import StorageClient
from chronicle.uploads import read_upload, upload_profile_picture, validate_image

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_RATING = 1
MAX_RATING = 4

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
_FORM_INTEGER_PATTERN = re.compile(r"-?[0-9]+")

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class RequestFields:
    """Body fields of a JSON or form-encoded request."""

    values: dict
    from_form: bool = False


async def read_request_fields(request: Request) -> RequestFields:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        values = {key: value for key, value in form.items() if isinstance(value, str)}
        return RequestFields(values=values, from_form=True)

    raw = await request.body()
    if not raw.strip():
        return RequestFields(values={})
    try:
        values = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Invalid JSON body") from exc
    if not isinstance(values, dict):
        raise ValidationError("Request body must be a JSON object")
    return RequestFields(values=values)


def _parse_fields(model: Type[ModelT], values: dict) -> ModelT:
    try:
        return model.model_validate(values)
    except SchemaValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc


@router.post(
    "/history", response_model=Envelope[HistoryCreated], status_code=201
)
def create_history(
    fields: RequestFields = Depends(read_request_fields),
    db: DbClient = Depends(get_db_client),
):
    payload = _parse_fields(HistoryCreateRequest, fields.values)
    if not payload.title or not payload.message:
        raise ValidationError("Judul dan pesan harus diisi")
    record = db.create_history(payload.title, payload.message)
    return Envelope(
        data=HistoryCreated(id=record.id, title=record.title, message=record.message)
    )


@router.get("/history", response_model=Envelope[list[HistoryItem]])
def list_history(db: DbClient = Depends(get_db_client)):
    records = db.list_history()
    return Envelope(data=[HistoryItem(**record.as_dict()) for record in records])


@router.get("/history/{history_id}", response_model=Envelope[HistoryItem])
def get_history(history_id: str, db: DbClient = Depends(get_db_client)):
    record = db.get_history(history_id)
    if not record:
        raise NotFoundError("Tidak memiliki akses")
    return Envelope(data=HistoryItem(**record.as_dict()))


@router.get("/profile", response_model=Envelope[ProfileData])
def get_profile(db: DbClient = Depends(get_db_client)):
    profile = db.get_profile()
    if not profile:
        raise NotFoundError("Profil tidak ditemukan")
    return Envelope(data=ProfileData(**profile.as_dict()))


@router.put("/profile", response_model=Envelope[ProfileUpdated])
async def update_profile(
    name: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_app_settings),
):
    """
    Update the profile name and, when a file is sent, its picture.

    The picture is validated before anything else is touched and uploaded
    before the row is written, so a failed upload leaves the row as it was.
    """
    upload = None
    if profile_picture is not None and profile_picture.filename:
        upload = await read_upload(profile_picture, settings.upload_max_bytes)
        validate_image(
            upload,
            allowed_mime_types=settings.upload_allowed_mime_types,
            max_bytes=settings.upload_max_bytes,
        )

    if not name:
        raise ValidationError("Name is required")

    profile_picture_url = None
    if upload is not None:
        profile_picture_url = await upload_profile_picture(storage, upload)

    await run_in_threadpool(db.update_profile, name, profile_picture_url)
    return Envelope(
        data=ProfileUpdated(name=name, profile_picture_url=profile_picture_url)
    )


@router.post(
    "/feedback", response_model=Envelope[FeedbackCreated], status_code=201
)
def create_feedback(
    fields: RequestFields = Depends(read_request_fields),
    db: DbClient = Depends(get_db_client),
):
    values = dict(fields.values)
    rating = values.get("rating")
    # Form fields arrive as text; only whole numbers become integers.
    if fields.from_form and isinstance(rating, str):
        if _FORM_INTEGER_PATTERN.fullmatch(rating.strip()):
            values["rating"] = int(rating.strip())
    payload = _parse_fields(FeedbackCreateRequest, values)
    if not payload.comment or not payload.rating:
        raise ValidationError("Komentar dan rating harus diisi")
    if payload.rating < MIN_RATING or payload.rating > MAX_RATING:
        raise ValidationError(f"Rating harus antara {MIN_RATING}-{MAX_RATING}")
    record = db.create_feedback(payload.comment, payload.rating)
    return Envelope(
        data=FeedbackCreated(
            id=record.id, comment=record.comment, rating=record.rating
        )
    )

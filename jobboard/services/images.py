"""
Image upload pipeline.

Resources declare their image fields once; an ImageHandler then turns the
uploaded parts of a multipart request into resized JPEG files and public
paths, and keeps the stored files in step with the database:

    validate every part -> resize in memory -> insert/update + flush
    -> persist files -> commit -> remove replaced files

Nothing is written to storage until all parts have been validated and
resized. A failure after files were persisted rolls back the transaction
and deletes them again.
"""

import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from fastapi import Request
from PIL import Image, UnidentifiedImageError
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from jobboard.core import storage
from jobboard.core.exceptions import MalformedRequestError, UploadCountError, UploadTypeError
from jobboard.crud.base import CRUDHandler, success

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


@dataclass(frozen=True)
class ImageField:
    name: str           # model attribute, e.g. "image_cover"
    max_count: int
    width: int
    height: int
    quality: int = 85

    @property
    def form_key(self) -> str:
        return to_camel(self.name)

    @property
    def multiple(self) -> bool:
        return self.max_count > 1


@dataclass
class ProcessedImage:
    field: ImageField
    key: str
    data: bytes


class ImageService:
    """Pillow resizing and file naming."""

    @staticmethod
    def resize(data: bytes, field: ImageField) -> bytes:
        """Resize to exactly width x height and re-encode as JPEG."""
        try:
            with Image.open(BytesIO(data)) as image:
                resized = image.convert("RGB").resize((field.width, field.height))
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
            raise UploadTypeError()

        buffer = BytesIO()
        resized.save(buffer, format="JPEG", quality=field.quality)
        return buffer.getvalue()

    @staticmethod
    def generate_filename(folder: str, field: ImageField, ref_id: Any, timestamp_ms: int, index: int) -> str:
        return f"{folder}-{field.form_key}-{ref_id}-{timestamp_ms}-{index}.jpeg"


async def read_request_payload(request: Request) -> Tuple[Dict[str, Any], Dict[str, List[UploadFile]]]:
    """
    Read a JSON or form body.

    Returns the plain fields and the uploaded files grouped by form key.
    Repeated plain form keys are collected into lists.
    """
    content_type = request.headers.get("content-type", "")
    uploads: Dict[str, List[UploadFile]] = defaultdict(list)

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        payload: Dict[str, Any] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if value.filename:
                    uploads[key].append(value)
            elif key in payload:
                current = payload[key]
                payload[key] = current + [value] if isinstance(current, list) else [current, value]
            else:
                payload[key] = value
        return payload, dict(uploads)

    body = await request.body()
    if not body.strip():
        return {}, {}
    try:
        payload = json.loads(body)
    except ValueError:
        raise MalformedRequestError()
    if not isinstance(payload, dict):
        raise MalformedRequestError("Invalid request format: expected a JSON object")
    return payload, {}


class ImageHandler:
    """Upload-aware create/update/delete for one resource."""

    def __init__(
        self,
        crud: CRUDHandler,
        folder: str,
        fields: Sequence[ImageField],
        keep: Iterable[str] = (),
    ):
        self.crud = crud
        self.folder = folder
        self.fields = tuple(fields)
        self.keep = frozenset(keep)   # paths never removed (shared defaults)
        self.service = ImageService()
        self._by_key = {}
        for field in self.fields:
            self._by_key[field.form_key] = field
            self._by_key[field.name] = field

    # ------------------------------------------------------------- uploads

    def validate_uploads(self, uploads: Mapping[str, List[UploadFile]]) -> None:
        """Reject the whole request before anything is resized or stored."""
        for key, parts in uploads.items():
            field = self._by_key.get(key)
            if field is None:
                raise UploadCountError(key, 0)
            if len(parts) > field.max_count:
                raise UploadCountError(field.form_key, field.max_count)
            for part in parts:
                if not (part.content_type or "").startswith("image"):
                    raise UploadTypeError()

    async def process_uploads(
        self, uploads: Mapping[str, List[UploadFile]], ref_id: Any
    ) -> Tuple[Dict[str, Any], List[ProcessedImage]]:
        """
        Validate and resize uploaded parts.

        Returns the body values to merge into the payload (public paths,
        a list for multi-image fields) and the buffered images to persist.
        """
        self.validate_uploads(uploads)

        timestamp_ms = int(time.time() * 1000)
        values: Dict[str, Any] = {}
        pending: List[ProcessedImage] = []

        for key, parts in uploads.items():
            field = self._by_key[key]
            paths = []
            for index, part in enumerate(parts):
                data = await part.read()
                resized = await run_in_threadpool(self.service.resize, data, field)
                filename = self.service.generate_filename(self.folder, field, ref_id, timestamp_ms, index)
                image_key = f"{self.folder}/{filename}"
                pending.append(ProcessedImage(field=field, key=image_key, data=resized))
                paths.append(storage.public_path(image_key))
            values[field.name] = paths if field.multiple else paths[0]

        return values, pending

    async def collect(self, request: Request, ref_id: Any) -> Tuple[Dict[str, Any], List[ProcessedImage]]:
        """Read the request and merge processed image paths into its payload."""
        payload, uploads = await read_request_payload(request)
        return await self.merge_uploads(payload, uploads, ref_id)

    async def merge_uploads(
        self, payload: Dict[str, Any], uploads: Mapping[str, List[UploadFile]], ref_id: Any
    ) -> Tuple[Dict[str, Any], List[ProcessedImage]]:
        values, pending = await self.process_uploads(uploads, ref_id)
        for name, value in values.items():
            payload.pop(to_camel(name), None)
            payload[name] = value
        return payload, pending

    # ------------------------------------------------------------- storage

    def persist(self, pending: Sequence[ProcessedImage], saved: List[str]) -> None:
        """Write buffered images, recording each stored key in ``saved``."""
        for image in pending:
            storage.image_storage.save_file(image.key, image.data)
            saved.append(image.key)

    def discard(self, keys: Iterable[str]) -> None:
        for key in keys:
            try:
                storage.image_storage.delete_file(key)
            except Exception as e:
                logger.warning(f"Could not discard image {key}: {e!r}")

    def paths_of(self, instance, names: Optional[Iterable[str]] = None) -> List[str]:
        paths: List[str] = []
        for field in self.fields:
            if names is not None and field.name not in names:
                continue
            value = getattr(instance, field.name, None)
            if isinstance(value, list):
                paths.extend(value)
            elif value:
                paths.append(value)
        return paths

    def remove_files(self, paths: Iterable[str]) -> None:
        """Best-effort removal: failures are logged, never raised."""
        for path in paths:
            if path in self.keep:
                continue
            key = storage.key_from_path(path)
            if key is None:
                continue
            try:
                removed = storage.image_storage.delete_file(key)
            except Exception as e:
                logger.warning(f"Could not remove image {path}: {e!r}")
                continue
            if not removed:
                logger.warning(f"Could not remove image {path}")

    # ------------------------------------------------------------- writes

    def save_new(self, db: Session, data: Dict[str, Any], pending: Sequence[ProcessedImage], owner=None):
        saved: List[str] = []
        try:
            instance = self.crud.insert(db, data, owner)
            self.persist(pending, saved)
            self.crud.commit(db, data)
        except Exception:
            db.rollback()
            self.discard(saved)
            raise
        db.refresh(instance)
        return instance

    def save_update(self, db: Session, instance, data: Dict[str, Any], pending: Sequence[ProcessedImage]):
        touched = [field.name for field in self.fields if field.name in data]
        previous = {name: getattr(instance, name) for name in touched}

        saved: List[str] = []
        try:
            self.crud.apply_update(db, instance, data)
            self.persist(pending, saved)
            self.crud.commit(db, data)
        except Exception:
            db.rollback()
            self.discard(saved)
            raise
        db.refresh(instance)

        replaced = []
        for name, old_value in previous.items():
            current = set(self._as_list(getattr(instance, name)))
            replaced.extend(path for path in self._as_list(old_value) if path not in current)
        self.remove_files(replaced)
        return instance

    @staticmethod
    def _as_list(value) -> List[str]:
        if value is None:
            return []
        return list(value) if isinstance(value, list) else [value]

    # ------------------------------------------------------------- operations

    async def create_one(self, request: Request, db: Session, owner) -> Dict[str, Any]:
        payload, pending = await self.collect(request, owner.id)
        data = self.crud.validate_create(payload)
        instance = self.save_new(db, data, pending, owner)
        logger.info(f"Created {self.crud.model.__name__} {instance.id} with {len(pending)} images")
        return success(self.crud.serialize_one(db, instance), "Created successfully")

    async def update_one(self, request: Request, db: Session, record_id: int) -> Dict[str, Any]:
        instance = self.crud.get_or_404(db, record_id)
        payload, pending = await self.collect(request, record_id)
        data = self.crud.validate_update(payload)
        self.save_update(db, instance, data, pending)
        return success(self.crud.serialize_one(db, instance), "Updated successfully")

    def delete_one(self, db: Session, record_id: int) -> Dict[str, Any]:
        instance = self.crud.get_or_404(db, record_id)
        self.remove_files(self.paths_of(instance))
        return self.crud.delete_one(db, record_id)

    def delete_all(self, db: Session) -> Dict[str, Any]:
        """Remove the files of every record crud.delete_all will delete."""
        query = db.query(self.crud.model)
        for predicate in self.crud.baseline_predicates():
            query = query.filter(predicate.to_clause(self.crud.field_map))
        for instance in query.all():
            self.remove_files(self.paths_of(instance))
        return self.crud.delete_all(db)

import logging
import os
import uuid
from typing import Any, Iterable, List

from fastapi import UploadFile
from app.config import settings
from app.exceptions import ValidationError

logger = logging.getLogger(__name__)


def parse_positive_id(value: Any, name: str = "id") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"the {name} is not a valid path parameter")
    if isinstance(value, int):
        parsed = value
    else:
        text = str(value).strip() if value is not None else ""
        if not text.isdigit():
            raise ValidationError(f"the {name} is not a valid path parameter")
        parsed = int(text)
    if parsed < 1:
        raise ValidationError(f"the {name} is not a valid path parameter")
    return parsed


def parse_id_list(values: Iterable[Any], name: str = "id") -> List[int]:
    return [parse_positive_id(v, name) for v in values]


def validate_attachment(file: UploadFile) -> None:
    if file.content_type not in settings.ALLOWED_ATTACHMENT_TYPES:
        raise ValidationError(
            f"Invalid file type '{file.content_type}'. "
            f"Allowed: {', '.join(settings.ALLOWED_ATTACHMENT_TYPES)}"
        )


async def save_attachment(file: UploadFile) -> dict:
    """파일을 UPLOAD_DIR 에 기록한다. DB 트랜잭션(행 잠금) 밖에서 호출해야 한다."""
    validate_attachment(file)
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError("File exceeds 50 MB limit")

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    original = file.filename or ""
    ext = os.path.splitext(original)[1].lower()
    filename = f"attachments-{uuid.uuid4().hex}{ext}"
    path = os.path.join(settings.UPLOAD_DIR, filename)

    with open(path, "wb") as f:
        f.write(content)

    return {
        "filename": filename,
        "original_filename": original or None,
        "storage_path": path,
        "mime_type": file.content_type,
        "size_bytes": len(content),
    }


def remove_stored_file(path: str) -> bool:
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("[attachments] failed to remove %s: %s", path, exc)
        return False

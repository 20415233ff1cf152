"""
Declarative request validation.

A rule table maps each field name to a ``FieldRule``. ``validate`` checks a
field set against the table and returns every violation, keyed by field, so
the caller can report all problems in one response.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Any, Dict, List, Mapping, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from postapi.core.exceptions import ValidationFailed


@dataclass
class ImageUpload:
    """An uploaded file read into memory.

    ``size`` is the full upload size when only the leading bytes were kept
    in ``data``; ``None`` means ``data`` is the whole file.
    """

    filename: Optional[str]
    content_type: Optional[str]
    data: bytes
    size: Optional[int] = None

    @property
    def size_kb(self) -> float:
        return (self.size if self.size is not None else len(self.data)) / 1024

    @property
    def complete(self) -> bool:
        return self.size is None or len(self.data) >= self.size

    @property
    def is_empty(self) -> bool:
        return not self.data and not self.filename and not self.size


@dataclass
class FieldRule:
    required: bool = False
    string: bool = False
    image: bool = False
    formats: Optional[Sequence[str]] = None
    max_kb: Optional[int] = None


# Raster formats that count as images, keyed by Pillow's format name
_RASTER_FORMATS = {
    "JPEG": "jpeg",
    "MPO": "jpeg",
    "PNG": "png",
    "GIF": "gif",
    "BMP": "bmp",
    "WEBP": "webp",
}

_CONTENT_TYPE_FORMATS = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/pjpeg": "jpeg",
    "image/png": "png",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


def sniff_image_format(data: bytes, complete: bool = True) -> Optional[str]:
    """Detect the image format of ``data``, ``None`` if it is not an image.

    Raster images are identified by Pillow. ``complete=False`` means ``data``
    holds only the start of the file, so the header is parsed but the image
    is not verified.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = _RASTER_FORMATS.get(img.format or "")
            if fmt and complete:
                img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        fmt = None
    if fmt:
        return fmt

    # SVG is XML text; Pillow does not read it
    head = data[:1024].decode("utf-8", errors="ignore").lstrip().lower()
    if head.startswith("<?xml") or head.startswith("<svg") or head.startswith("<!doctype svg"):
        if "<svg" in head:
            return "svg"
    return None


def _format_names(fmt: Optional[str]) -> set:
    # jpeg files satisfy either spelling
    if fmt == "jpeg":
        return {"jpeg", "jpg"}
    return {fmt} if fmt else set()


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, ImageUpload):
        return value.is_empty
    return False


def _check_field(label: str, value: Any, rule: FieldRule) -> List[str]:
    if rule.string and not isinstance(value, str):
        return [f"The {label} must be a string."]

    errors = []
    upload = value if isinstance(value, ImageUpload) else None
    detected = sniff_image_format(upload.data, upload.complete) if upload else None

    if rule.image and detected is None:
        errors.append(f"The {label} must be an image.")

    if rule.formats:
        declared = None
        if upload and upload.content_type:
            declared = _CONTENT_TYPE_FORMATS.get(upload.content_type.split(";")[0].strip().lower())
        allowed = {fmt.lower() for fmt in rule.formats}
        if not (_format_names(detected or declared) & allowed):
            errors.append(f"The {label} must be a file of type: {', '.join(rule.formats)}.")

    if rule.max_kb is not None and upload and upload.size_kb > rule.max_kb:
        errors.append(f"The {label} must not be greater than {rule.max_kb} kilobytes.")

    return errors


def validate(fields: Mapping[str, Any], rules: Mapping[str, FieldRule]) -> Dict[str, List[str]]:
    """Return a mapping of field -> messages; empty when everything passes."""
    errors: Dict[str, List[str]] = {}
    for field, rule in rules.items():
        label = field.replace("_", " ")
        value = fields.get(field)
        if _is_missing(value):
            if rule.required:
                errors[field] = [f"The {label} field is required."]
            # Optional fields that are absent skip every other rule
            continue
        messages = _check_field(label, value, rule)
        if messages:
            errors[field] = messages
    return errors


def validate_or_raise(fields: Mapping[str, Any], rules: Mapping[str, FieldRule]) -> None:
    errors = validate(fields, rules)
    if errors:
        raise ValidationFailed(errors)

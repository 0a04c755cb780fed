# template-compositor/backend/utils/errors.py

from __future__ import annotations

from typing import Iterable, Optional


FIELD_ROLES = {
    "aiImage": "AI image",
    "headerTemplate": "header",
    "footerTemplate": "footer",
}


class CompositeError(Exception):
    """Base for every failure the compositing pipeline reports."""

    kind = "CompositeError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def client_error(self) -> bool:
        return 400 <= self.status_code < 500


class MissingField(CompositeError):
    kind = "MissingField"
    status_code = 400

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            "Missing required images. Need: aiImage, headerTemplate, footerTemplate"
            f" (missing: {', '.join(self.missing)})"
        )


class EmptyAfterCleaning(CompositeError):
    kind = "EmptyAfterCleaning"
    status_code = 400

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        super().__init__(
            "One or more base64 strings are empty after cleaning: "
            + ", ".join(self.fields)
        )


class InvalidEncoding(CompositeError):
    kind = "InvalidEncoding"
    status_code = 400

    def __init__(self, field: str, reason: str):
        self.field = field
        self.role = FIELD_ROLES.get(field, field)
        super().__init__(f"Invalid base64 for {field}: {reason}")


class DecodeError(CompositeError):
    kind = "DecodeError"

    def __init__(self, role: str, reason: Optional[str] = None):
        self.role = role
        msg = f"Could not decode {role} image"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ExtractOutOfBounds(CompositeError):
    kind = "ExtractOutOfBounds"

    def __init__(self, source_size, region):
        self.source_size = tuple(source_size)
        self.region = tuple(region)
        left, top, width, height = self.region
        super().__init__(
            f"AI image is {self.source_size[0]}x{self.source_size[1]}; "
            f"cannot extract {width}x{height} region at left={left}, top={top}"
        )


class LayerSizeMismatch(CompositeError):
    kind = "LayerSizeMismatch"

    def __init__(self, role: str, size, expected: str):
        self.role = role
        self.size = tuple(size)
        super().__init__(
            f"{role} layer is {self.size[0]}x{self.size[1]}; expected {expected}"
        )


class EncodeError(CompositeError):
    kind = "EncodeError"

    def __init__(self, reason: str):
        super().__init__(f"Could not encode composite image: {reason}")

"""
Transform URL construction for the CDN proxy.

The asset origin addresses transformed variants by path:

    <base>/<kind>/upload/<directives>/<identifier>[.<extension>]

where ``<directives>`` is a comma separated list in a fixed order (width,
quality, format). Identical inputs always produce identical URLs so the
results stay cacheable on both sides of the proxy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models.media import MediaKind
from ..utils.validation import is_safe_directive_value

AUTO = "auto"


class InvalidOptions(ValueError):
    """Raised when transform options cannot be turned into directives."""


@dataclass(frozen=True)
class TransformOptions:
    width: Optional[int] = None
    quality: str = AUTO
    format: str = AUTO
    extension: Optional[str] = None

    def validate(self) -> None:
        if self.width is not None:
            if isinstance(self.width, bool) or not isinstance(self.width, int):
                raise InvalidOptions(f"Width must be an integer, got {self.width!r}")
            if self.width <= 0:
                raise InvalidOptions(f"Width must be positive, got {self.width}")
        if not is_safe_directive_value(self.quality):
            raise InvalidOptions(f"Invalid quality {self.quality!r}")
        if not is_safe_directive_value(self.format):
            raise InvalidOptions(f"Invalid format {self.format!r}")
        if self.extension is not None and not is_safe_directive_value(self.extension):
            raise InvalidOptions(f"Invalid extension {self.extension!r}")

    def directives(self) -> list[str]:
        parts = []
        if self.width is not None:
            parts.append(f"w_{self.width}")
        parts.append(f"q_{self.quality}")
        parts.append(f"f_{self.format}")
        return parts


def parse_transform_options(
    width: Optional[str] = None,
    quality: Optional[str] = None,
    fmt: Optional[str] = None,
) -> TransformOptions:
    """Turn raw ``w``/``q``/``f`` query values into validated options.

    Blank values count as absent. A width that is present must be a base-10
    positive integer; anything else raises :class:`InvalidOptions`.
    """
    parsed_width = None
    if width is not None and width.strip():
        raw = width.strip()
        if not (raw.isascii() and raw.isdigit()):
            raise InvalidOptions(f"Width must be a positive integer, got {width!r}")
        parsed_width = int(raw)

    options = TransformOptions(
        width=parsed_width,
        quality=quality.strip() if quality and quality.strip() else AUTO,
        format=fmt.strip() if fmt and fmt.strip() else AUTO,
    )
    options.validate()
    return options


def build_transform_url(
    base: str,
    kind: MediaKind,
    identifier: str,
    options: Optional[TransformOptions] = None,
) -> str:
    """Return the origin URL for ``identifier`` with ``options`` applied."""
    options = options or TransformOptions()
    options.validate()

    segment = ",".join(options.directives())
    target = identifier
    if options.extension:
        target = f"{identifier}.{options.extension}"
    return f"{base.rstrip('/')}/{MediaKind(kind).value}/upload/{segment}/{target}"

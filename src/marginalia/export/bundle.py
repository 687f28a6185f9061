"""Self-contained document exports.

A bundle carries the document source together with its highlight payload,
so the highlights can be re-imported wherever the file is opened next.
The HTML export renders the highlighted tree as a standalone page.
"""

from __future__ import annotations

import html as html_module
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, ValidationError

from marginalia.annotations.models import Annotation, parse_records
from marginalia.document.html import to_html
from marginalia.document.identity import document_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marginalia.document.nodes import Element

logger = logging.getLogger(__name__)

BUNDLE_FORMAT = "marginalia-bundle"
BUNDLE_VERSION = 1


class BundleError(ValueError):
    """The payload is not a readable highlight bundle."""


class Bundle(BaseModel):
    """Exported document with its highlights.

    ``annotations`` holds raw records; invalid ones are dropped by
    ``valid_annotations`` rather than failing the whole import.
    """

    format: Literal["marginalia-bundle"] = BUNDLE_FORMAT
    version: int = BUNDLE_VERSION
    name: str
    content: str
    key: str | None = None
    annotations: list[Any] = Field(default_factory=list)

    @property
    def document_key(self) -> str:
        return self.key or document_key(self.name, self.content)

    def valid_annotations(self) -> list[Annotation]:
        annotations, malformed = parse_records(self.annotations)
        if malformed:
            logger.warning(
                "Bundle %s: %d malformed highlight record(s) skipped",
                self.name,
                malformed,
            )
        return annotations


def build_bundle(
    name: str,
    content: str,
    annotations: Iterable[Annotation],
    *,
    key: str | None = None,
) -> dict[str, Any]:
    """Build the JSON-ready bundle for a document and its highlights."""
    bundle = Bundle(
        name=name,
        content=content,
        key=key,
        annotations=[a.to_record() for a in annotations],
    )
    return bundle.model_dump()


def read_bundle(data: dict[str, Any] | str | bytes) -> Bundle:
    """Validate a bundle from a dict or its JSON text.

    Raises:
        BundleError: Not JSON, not a bundle, or an unsupported version.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            msg = f"Bundle is not valid JSON: {exc}"
            raise BundleError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Bundle must be a JSON object, got {type(data).__name__}"
        raise BundleError(msg)
    if data.get("version", BUNDLE_VERSION) != BUNDLE_VERSION:
        msg = f"Unsupported bundle version {data.get('version')!r}"
        raise BundleError(msg)
    try:
        return Bundle.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid bundle: {exc.error_count()} error(s)"
        raise BundleError(msg) from exc


def write_bundle(path: Path | str, bundle: dict[str, Any]) -> Path:
    target = Path(path)
    target.write_text(json.dumps(bundle, ensure_ascii=False, indent=2), "utf-8")
    return target


def export_html(root: Element, title: str) -> str:
    """Render a highlighted tree as a standalone HTML page."""
    escaped_title = html_module.escape(title)
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        f"<title>{escaped_title}</title></head>\n"
        f"<body>{to_html(root)}</body></html>\n"
    )

"""Document export with embedded highlights."""

from marginalia.export.bundle import (
    BUNDLE_FORMAT,
    BUNDLE_VERSION,
    Bundle,
    BundleError,
    build_bundle,
    export_html,
    read_bundle,
    write_bundle,
)

__all__ = [
    "BUNDLE_FORMAT",
    "BUNDLE_VERSION",
    "Bundle",
    "BundleError",
    "build_bundle",
    "export_html",
    "read_bundle",
    "write_bundle",
]

from __future__ import annotations

# Native Google editor formats share this prefix and have no binary content.
GOOGLE_APP_MIME_PREFIX: str = "application/vnd.google-apps."


def is_google_app(mime_type: str) -> bool:
    """Returns True if the MIME type is a Google 'apps' type (folders included)."""
    return mime_type.startswith(GOOGLE_APP_MIME_PREFIX)


def is_transferable(mime_type: str | None) -> bool:
    """
    Only binary content can be streamed to the destination.

    Unknown MIME types are treated as binary.
    """
    if not mime_type:
        return True
    return not is_google_app(mime_type)

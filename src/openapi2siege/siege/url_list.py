import os
from typing import List, Optional

from ..ir.plan import RequestBatch, ResolvedRequest


def render_request(request: ResolvedRequest) -> str:
    """One line of a Siege URLs file: the URL alone for GET, else `URL METHOD payload`."""
    if request.method == "GET":
        return request.url
    return f"{request.url} {request.method} {request.payload}"


def media_types(requests: RequestBatch) -> List[str]:
    """Distinct non-empty media types, in order of first appearance."""
    seen: List[str] = []
    for request in requests:
        if request.media_type and request.media_type not in seen:
            seen.append(request.media_type)
    return seen


def render(requests: RequestBatch, media_type: Optional[str] = None) -> str:
    """
    Renders the URLs file. With a media type, only requests sent with that
    type are kept, along with those that carry no media type at all.
    """
    lines = [
        render_request(request)
        for request in requests
        if media_type is None or request.media_type in ("", media_type)
    ]
    return "\n".join(lines)


def media_type_prefix(media_type: str) -> str:
    """`application/vnd.api+json` -> `json`"""
    subtype = media_type.split("/")[-1]
    return subtype.split("+")[-1]


def prefix_filename(prefix: str, filename: str) -> str:
    directory, name = os.path.split(filename)
    return os.path.join(directory, f"{prefix}.{name}")

import base64
import re

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?:;[^;,]*)*?;base64,(?P<data>.*)$", re.S)


def to_data_uri(data, mime_type):
    """Encode raw bytes, or an already base64-encoded string, as a data-URI."""
    if isinstance(data, (bytes, bytearray)):
        data = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{data}"


def parse_data_uri(uri):
    """Split a base64 data-URI into its mime type and decoded bytes."""
    match = _DATA_URI_RE.match(uri or "")
    if not match:
        raise ValueError("Not a base64 data-URI")
    mime = match.group("mime") or "application/octet-stream"
    return mime, base64.b64decode(match.group("data"), validate=True)

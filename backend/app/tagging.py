from __future__ import annotations
import io
import re
from typing import Optional

from mutagen.id3 import APIC, ID3, ID3NoHeaderError, TALB, TIT2, TPE1

DEFAULT_ARTIST = "Suno AI"
DEFAULT_ALBUM = "Suno Generations"

_UNSAFE = re.compile(r'[/\\?%*:|"<>]')


def safe_filename(title: Optional[str], fallback: str) -> str:
    cleaned = _UNSAFE.sub("-", title or "").strip()
    return cleaned or fallback


def tag_mp3(
    data: bytes,
    title: str,
    artist: str = DEFAULT_ARTIST,
    album: Optional[str] = None,
    cover: Optional[bytes] = None,
) -> bytes:
    """Return ``data`` with ID3v2.3 title/artist/album and optional front cover."""
    buf = io.BytesIO(data)
    try:
        tags = ID3(buf)
    except ID3NoHeaderError:
        tags = ID3()

    tags.setall("TIT2", [TIT2(encoding=3, text=title)])
    tags.setall("TPE1", [TPE1(encoding=3, text=artist)])
    tags.setall("TALB", [TALB(encoding=3, text=album or DEFAULT_ALBUM)])
    if cover:
        tags.delall("APIC")
        tags.add(APIC(encoding=3, mime="image/jpeg", type=3, desc="Cover", data=cover))

    buf.seek(0)
    tags.save(buf, v2_version=3)
    return buf.getvalue()

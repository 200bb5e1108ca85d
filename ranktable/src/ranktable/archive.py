"""ZIP bundle of the two CSV files plus a README, produced as a byte stream."""

from __future__ import annotations

import io
import logging
import zipfile
from collections import deque
from datetime import date, datetime, timezone
from typing import Iterator

from .csv_codec import encode
from .layout import MAIN_CSV_NAME, NOTES_CSV_NAME, README_NAME
from .model import TableModel

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
COMPRESS_LEVEL = 9


class _StreamSink(io.RawIOBase):
    """Write-only, unseekable buffer that hands bytes back as soon as they are written."""

    def __init__(self) -> None:
        super().__init__()
        self._chunks: deque[bytes] = deque()

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:  # type: ignore[override]
        chunk = bytes(data)
        self._chunks.append(chunk)
        return len(chunk)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def render_readme(generated_at: datetime | None = None) -> str:
    stamp = (generated_at or datetime.now(timezone.utc)).isoformat()
    return (
        "LLM Ranking Export (CSV Compatible Format)\n"
        f"Generated: {stamp}\n"
        "\n"
        "Files included:\n"
        f"- {MAIN_CSV_NAME}: Main ranking data with control rows\n"
        f"- {NOTES_CSV_NAME}: Data notes in the same column layout\n"
        "\n"
        "Notes:\n"
        "- Control rows (id 1-6) carry column metadata: metric flag, hidden flag,\n"
        "  show-beside-model flag, full name, notes and numeric column id\n"
        "- Multi-value entries (separated by /) are preserved as-is in the CSV files;\n"
        "  the table displays their mean when every value is numeric\n"
        "- Estimated values are marked with ? and count towards the displayed mean\n"
        "- The notes file repeats the column id row so it can be read on its own\n"
    )


def bundle_filename(day: date | None = None) -> str:
    return f"llm-ranking-{(day or date.today()).isoformat()}.zip"


def iter_bundle(
    main_csv: str,
    notes_csv: str,
    readme: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield a DEFLATE (level 9) ZIP holding the three members, chunk by chunk.

    Members are written through an unseekable sink, so sizes go into data
    descriptors and only one chunk of output is held at a time.
    """

    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    sink = _StreamSink()
    members = ((MAIN_CSV_NAME, main_csv), (NOTES_CSV_NAME, notes_csv), (README_NAME, readme))
    with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESS_LEVEL) as bundle:
        for name, text in members:
            payload = text.encode("utf-8")
            with bundle.open(name, mode="w") as handle:
                for start in range(0, len(payload), chunk_size):
                    handle.write(payload[start : start + chunk_size])
                    chunk = sink.drain()
                    if chunk:
                        yield chunk
            chunk = sink.drain()
            if chunk:
                yield chunk
            logger.debug("Added %s (%d bytes) to bundle", name, len(payload))

    tail = sink.drain()
    if tail:
        yield tail


def build_bundle(main_csv: str, notes_csv: str, readme: str | None = None) -> bytes:
    return b"".join(iter_bundle(main_csv, notes_csv, readme if readme is not None else render_readme()))


def iter_model_bundle(
    model: TableModel,
    *,
    visible_only: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    generated_at: datetime | None = None,
) -> Iterator[bytes]:
    """Encode a model and stream it as a bundle.

    Encoding runs eagerly, so a TableFormatError is raised by this call rather
    than halfway through the stream.
    """

    encoded = encode(model, visible_only=visible_only)
    return iter_bundle(
        encoded.main_csv,
        encoded.notes_csv,
        render_readme(generated_at),
        chunk_size=chunk_size,
    )

import io
import zipfile
from datetime import date, datetime, timezone

import pytest

from ranktable.archive import build_bundle, bundle_filename, iter_bundle, iter_model_bundle, render_readme
from ranktable.csv_codec import encode
from ranktable.model import Column, TableModel
from ranktable.results import TableFormatError


def test_bundle_contains_the_three_members(sample_model) -> None:
    encoded = encode(sample_model)
    readme = render_readme(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    archive = zipfile.ZipFile(io.BytesIO(build_bundle(encoded.main_csv, encoded.notes_csv, readme)))

    assert archive.testzip() is None
    assert archive.namelist() == ["default-ranking.csv", "data-notes.csv", "README.txt"]
    assert archive.read("default-ranking.csv").decode("utf-8") == encoded.main_csv
    assert archive.read("data-notes.csv").decode("utf-8") == encoded.notes_csv
    assert archive.read("README.txt").decode("utf-8") == readme
    assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in archive.infolist())


def test_bundle_streams_in_several_chunks() -> None:
    main_csv = "id,模型名\n" + "".join(f"{index},{index * 7919 % 104729}\n" for index in range(20000))
    chunks = list(iter_bundle(main_csv, "id\n", "readme", chunk_size=1024))

    assert len(chunks) > 3
    archive = zipfile.ZipFile(io.BytesIO(b"".join(chunks)))
    assert archive.read("default-ranking.csv").decode("utf-8") == main_csv


def test_model_bundle_fails_before_streaming() -> None:
    model = TableModel()
    model.add_column(Column(id=10, key="隐藏"))
    with pytest.raises(TableFormatError):
        iter_model_bundle(model)


def test_iter_bundle_rejects_bad_chunk_size() -> None:
    with pytest.raises(ValueError):
        list(iter_bundle("a", "b", "c", chunk_size=0))


def test_readme_describes_the_export() -> None:
    readme = render_readme(datetime(2025, 1, 2, tzinfo=timezone.utc))

    assert "Generated: 2025-01-02T00:00:00+00:00" in readme
    assert "default-ranking.csv" in readme
    assert "data-notes.csv" in readme
    assert "id 1-6" in readme
    assert "preserved as-is" in readme


def test_bundle_filename() -> None:
    assert bundle_filename(date(2025, 3, 9)) == "llm-ranking-2025-03-09.zip"

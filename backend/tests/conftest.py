import pytest
from fastapi.testclient import TestClient

from rankboard.core import db
from rankboard.core.config import get_settings
from rankboard.main import create_app

MAIN_CSV = (
    "id,模型名,隐藏,MMLU,价格,显示在列名旁,isModel\n"
    "100,Alpha,否,70/72,$1,,是\n"
    "101,Beta,否,65?,$2,,是\n"
    "1,isDataset,否,是,否,,否\n"
    "2,隐藏,是,否,否,,否\n"
    "3,显示在模型旁,是,否,是,,否\n"
    "4,数据集全名,是,MMLU Pro,Price,是,否\n"
    "5,备注,是,,,是,否\n"
    "6,id,1,10,12,5,4\n"
)

NOTES_CSV = (
    "id,模型名,隐藏,MMLU,价格,显示在列名旁,isModel\n"
    "100,Alpha,,checked,,,\n"
    "6,id,1,10,12,5,4\n"
)

MERGE_CSV = (
    "id,模型名,隐藏,MMLU,显示在列名旁,isModel\n"
    "101,Beta,否,66,,是\n"
    "102,Gamma,否,80,,是\n"
    "1,isDataset,否,是,,否\n"
    "2,隐藏,是,否,,否\n"
    "3,显示在模型旁,是,否,,否\n"
    "4,数据集全名,是,MMLU Pro,是,否\n"
    "5,备注,是,,是,否\n"
    "6,id,1,10,5,4\n"
)


def _csv_files(main_csv: str, notes_csv: str | None = None) -> dict:
    files = {"main": ("main.csv", main_csv.encode("utf-8"), "text/csv")}
    if notes_csv is not None:
        files["notes"] = ("notes.csv", notes_csv.encode("utf-8"), "text/csv")
    return files


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'ranking.db'}")
    get_settings.cache_clear()
    db.reset_engine()

    with TestClient(create_app()) as test_client:
        yield test_client

    get_settings.cache_clear()
    db.reset_engine()


@pytest.fixture()
def seeded_client(client):
    response = client.post("/v1/table/import", files=_csv_files(MAIN_CSV, NOTES_CSV), data={"mode": "replace"})
    assert response.status_code == 200, response.text
    return client


@pytest.fixture()
def csv_files():
    return _csv_files


@pytest.fixture()
def main_csv() -> str:
    return MAIN_CSV


@pytest.fixture()
def notes_csv() -> str:
    return NOTES_CSV


@pytest.fixture()
def merge_csv() -> str:
    return MERGE_CSV

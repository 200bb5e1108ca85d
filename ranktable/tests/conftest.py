import pytest

from ranktable.csv_codec import decode
from ranktable.model import TableModel

SAMPLE_MAIN_CSV = (
    "id,模型名,隐藏,MMLU,GPQA,价格,显示在列名旁,isModel\n"
    "100,Alpha,否,70/72,80.5,$1,,是\n"
    "101,Beta,否,65?,78,$2,是,是\n"
    "102,Gamma,是,,81,,,是\n"
    "1,isDataset,否,是,是,否,,否\n"
    "2,隐藏,是,否,否,否,,否\n"
    "3,显示在模型旁,是,否,否,是,,否\n"
    "4,数据集全名,是,MMLU Pro,GPQA Diamond,Price per 1M,是,否\n"
    "5,备注,是,5-shot,,USD,是,否\n"
    "6,id,1,10,11,12,5,4\n"
)

SAMPLE_NOTES_CSV = (
    "id,模型名,隐藏,MMLU,GPQA,价格,显示在列名旁,isModel\n"
    "100,Alpha,,,,,,\n"
    "101,Beta,,,,,,\n"
    "102,Gamma,,pending re-run,,,,\n"
    "6,id,1,10,11,12,5,4\n"
)


UPDATE_CSV = (
    "id,模型名,隐藏,MMLU,HLE,显示在列名旁,isModel\n"
    "100,Alpha v2,否, 74 ,12,,是\n"
    "103,Delta,否,60,,,是\n"
    "1,isDataset,否,是,是,,否\n"
    "2,隐藏,是,否,否,,否\n"
    "3,显示在模型旁,是,否,否,,否\n"
    "4,数据集全名,是,MMLU Pro,Humanity's Last Exam,是,否\n"
    "5,备注,是,,,是,否\n"
    "6,id,1,10,13,5,4\n"
)

UPDATE_NOTES = (
    "id,模型名,隐藏,MMLU,HLE,显示在列名旁,isModel\n"
    "100,Alpha v2,,re-scored,,,\n"
    "103,Delta,,,ignored without value,,\n"
    "6,id,1,10,13,5,4\n"
)


@pytest.fixture()
def sample_main_csv() -> str:
    return SAMPLE_MAIN_CSV


@pytest.fixture()
def sample_notes_csv() -> str:
    return SAMPLE_NOTES_CSV


@pytest.fixture()
def sample_model() -> TableModel:
    return decode(SAMPLE_MAIN_CSV, SAMPLE_NOTES_CSV).model


@pytest.fixture()
def update_csv() -> str:
    return UPDATE_CSV


@pytest.fixture()
def update_notes_csv() -> str:
    return UPDATE_NOTES

from pathlib import Path

import pytest

from colonrecord.registry import SchemaRegistry


PERSON_LINES = [
    "Crow:David:Phil:05/03/1968",
    "Smith:Anne:Marie:12/11/1975",
]


@pytest.fixture()
def registry():
    # テストごとに独立した登録簿を使う
    return SchemaRegistry()


@pytest.fixture()
def person(registry):
    return registry.declare("Person", ["first", "middle", "last", "dob"])


@pytest.fixture()
def person_file(tmp_path: Path) -> Path:
    path = tmp_path / "people.txt"
    path.write_text("\n".join(PERSON_LINES) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def person_csv_file(tmp_path: Path) -> Path:
    path = tmp_path / "people.csv"
    path.write_text(
        "\n".join(line.replace(":", ",") for line in PERSON_LINES) + "\n",
        encoding="utf-8",
    )
    return path

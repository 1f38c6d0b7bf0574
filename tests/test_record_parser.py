import datetime
import io
import re

import pytest

from colonrecord.errors import (
    FileAccessError,
    StreamReadError,
    UnknownFieldError,
    UnknownTypeError,
    ValueConstructionError,
)
from colonrecord.parser import record_parser
from colonrecord.parser.record_parser import (
    get_field,
    new_instance,
    parse_file,
    parse_line,
    parse_stream,
    set_field,
)


FIELDS = ["first", "middle", "last", "dob"]


class Stamp:
    """呼び出し回数を数えるためのファクトリ。"""

    calls: list = []

    def __init__(self, raw):
        self.raw = raw

    @classmethod
    def parse(cls, raw):
        cls.calls.append(raw)
        return cls(raw.upper())


@pytest.fixture(autouse=True)
def _reset_stamp():
    Stamp.calls = []


# ─────────────────────────────
# 1行のパース
# ─────────────────────────────
def test_person_line(registry, person):
    rec = parse_line("Person", "Crow:David:Phil:05/03/1968", registry=registry)

    assert rec.first == "Crow"
    assert rec.middle == "David"
    assert rec.last == "Phil"
    assert rec.dob == "05/03/1968"


def test_positional_mapping(registry, person):
    columns = ["a", "b", "c", "d"]
    rec = parse_line("Person", ":".join(columns), registry=registry)
    assert [get_field(rec, name) for name in FIELDS] == columns


def test_missing_trailing_columns_stay_unset(registry, person):
    rec = parse_line("Person", "Crow:David", registry=registry)

    assert rec.as_dict() == {"first": "Crow", "middle": "David"}
    assert rec.last is None
    assert not rec.is_set("dob")


def test_trailing_empty_columns_count_as_missing(registry, person):
    rec = parse_line("Person", "Crow:David::", registry=registry)
    assert rec.as_dict() == {"first": "Crow", "middle": "David"}


def test_inner_empty_column_is_empty_string(registry, person):
    rec = parse_line("Person", "Crow::Phil", registry=registry)
    assert rec.middle == ""
    assert rec.last == "Phil"


def test_extra_columns_are_ignored(registry, person):
    rec = parse_line("Person", "a:b:c:d:e:f", registry=registry)
    assert rec.as_dict() == {"first": "a", "middle": "b", "last": "c", "dob": "d"}


def test_blank_line_gives_blank_record(registry, person):
    assert parse_line("Person", "\n", registry=registry).as_dict() == {}
    assert parse_line("Person", "", registry=registry).as_dict() == {}


def test_line_terminators_are_stripped(registry, person):
    assert parse_line("Person", "a:b:c:d\n", registry=registry).dob == "d"
    assert parse_line("Person", "a:b:c:d\r\n", registry=registry).dob == "d"


def test_no_trimming_and_no_quote_handling(registry, person):
    rec = parse_line("Person", ' a :"b:c": d', registry=registry)
    assert rec.first == " a "
    assert rec.middle == '"b'
    assert rec.last == 'c"'
    assert rec.dob == " d"


def test_regex_delimiter(registry, person):
    registry.set_delimiter("Person", re.compile(r"\s*,\s*"))
    rec = parse_line("Person", "Crow , David,Phil ,  05/03/1968", registry=registry)
    assert rec.as_dict() == {"first": "Crow", "middle": "David", "last": "Phil", "dob": "05/03/1968"}


def test_literal_delimiter_is_not_a_regex(registry, person):
    registry.set_delimiter("Person", ".")
    rec = parse_line("Person", "a.b.c.d", registry=registry)
    assert rec.dob == "d"


def test_unknown_type(registry):
    with pytest.raises(UnknownTypeError):
        parse_line("Nope", "a:b", registry=registry)
    with pytest.raises(UnknownTypeError):
        new_instance("Nope", registry=registry)


# ─────────────────────────────
# インスタンス操作
# ─────────────────────────────
def test_new_instance_and_field_access(registry, person):
    rec = new_instance("Person", registry=registry)
    assert isinstance(rec, person)
    assert rec.as_dict() == {}

    assert set_field(rec, "first", "Crow") == "Crow"
    assert get_field(rec, "first") == "Crow"
    assert set_field(rec, "first", None) == "Crow"
    assert get_field(rec, "middle") is None

    with pytest.raises(UnknownFieldError):
        set_field(rec, "nickname", "x")


# ─────────────────────────────
# 値の変換
# ─────────────────────────────
def test_value_constructor_called_once_per_occurrence(registry):
    registry.register_type("Stamp", Stamp)
    registry.declare("Event", ["name", "at=Stamp=parse"])

    rows = parse_stream("Event", ["boot:x1", "halt", "stop:y2:extra"], registry=registry)

    assert Stamp.calls == ["x1", "y2"]
    assert isinstance(rows[0].at, Stamp)
    assert rows[0].at.raw == "X1"
    assert rows[1].at is None
    assert rows[2].at.raw == "Y2"


def test_type_is_called_when_no_constructor_named(registry):
    Count = registry.declare("Count", ["label", "n=int"])
    assert Count.parse_line("apples:12").n == 12


def test_dotted_factory_with_constructor(registry):
    registry.declare("Birth", ["name", "dob=datetime.date=fromisoformat"])
    rec = parse_line("Birth", "Phil:1968-05-03", registry=registry)
    assert rec.dob == datetime.date(1968, 5, 3)


def test_factory_failure_is_wrapped(registry):
    registry.declare("Count", ["label", "n=int"])
    with pytest.raises(ValueConstructionError) as info:
        parse_line("Count", "apples:twelve", registry=registry)
    assert isinstance(info.value.__cause__, ValueError)
    assert info.value.field_name == "n"
    assert info.value.raw_value == "twelve"


def test_missing_constructor_attribute(registry):
    registry.declare("Count", ["n=int=nope"])
    with pytest.raises(ValueConstructionError, match="nope"):
        parse_line("Count", "1", registry=registry)


def test_unresolvable_factory_type(registry):
    registry.declare("Thing", ["x=NoSuchFactory"])
    with pytest.raises(UnknownTypeError):
        parse_line("Thing", "1", registry=registry)


# ─────────────────────────────
# ストリーム
# ─────────────────────────────
def test_every_line_becomes_a_record(registry, person):
    lines = io.StringIO("Crow:David:Phil:05/03/1968\n\n# comment\nSmith\n")
    rows = parse_stream("Person", lines, registry=registry)

    assert len(rows) == 4
    assert rows[0].first == "Crow"
    assert rows[1].as_dict() == {}
    assert rows[2].first == "# comment"
    assert rows[3].as_dict() == {"first": "Smith"}


def test_stream_accepts_bytes_lines(registry, person):
    rows = parse_stream("Person", [b"a:b:c:d\n"], registry=registry)
    assert rows[0].dob == "d"


def test_stream_consumed_once(registry, person):
    gen = (line for line in ["a:b", "c:d"])
    assert len(parse_stream("Person", gen, registry=registry)) == 2
    assert parse_stream("Person", gen, registry=registry) == []


def test_read_failure_mid_stream(registry, person):
    def broken():
        yield "a:b:c:d"
        raise OSError("device went away")

    with pytest.raises(StreamReadError) as info:
        parse_stream("Person", broken(), registry=registry)
    assert isinstance(info.value, OSError)
    assert isinstance(info.value.__cause__, OSError)


def test_undecodable_bytes_mid_stream(registry, person):
    with pytest.raises(StreamReadError):
        parse_stream("Person", [b"ok:line", b"\xff\xfe:bad"], registry=registry)


def test_read_stream_classmethod(person):
    rows = person.read_stream(["Crow:David:Phil:05/03/1968"])
    assert rows == [person(first="Crow", middle="David", last="Phil", dob="05/03/1968")]


# ─────────────────────────────
# ファイル
# ─────────────────────────────
def test_parse_file(registry, person, person_file):
    rows = parse_file("Person", person_file, registry=registry)

    assert [r.first for r in rows] == ["Crow", "Smith"]
    assert rows[0].as_dict() == {"first": "Crow", "middle": "David", "last": "Phil", "dob": "05/03/1968"}


def test_file_line_count_includes_blank_lines(registry, person, tmp_path):
    path = tmp_path / "gaps.txt"
    path.write_text("a:b\n\n\n#x\nc\n", encoding="utf-8")
    assert len(parse_file("Person", str(path), registry=registry)) == 5


def test_delimiter_change_between_files(registry, person, person_file, person_csv_file):
    colon_rows = parse_file("Person", person_file, registry=registry)
    snapshot = [r.as_dict() for r in colon_rows]

    registry.set_delimiter("Person", ",")
    comma_rows = parse_file("Person", person_csv_file, registry=registry)

    assert comma_rows == colon_rows
    # 既に作ったレコードは区切り変更の影響を受けない
    assert [r.as_dict() for r in colon_rows] == snapshot

    # 区切りを戻さないとコロン区切りは1カラム扱い
    rows = parse_file("Person", person_file, registry=registry)
    assert rows[0].as_dict() == {"first": "Crow:David:Phil:05/03/1968"}


def test_missing_file(registry, person, tmp_path):
    missing = tmp_path / "nope.txt"
    with pytest.raises(FileAccessError) as info:
        parse_file("Person", missing, registry=registry)
    assert isinstance(info.value.__cause__, FileNotFoundError)
    assert "nope.txt" in str(info.value)


def test_missing_file_with_detection(registry, person, tmp_path):
    with pytest.raises(FileAccessError):
        parse_file("Person", tmp_path / "nope.txt", encoding=None, registry=registry)


def test_unknown_type_checked_before_opening(registry, tmp_path):
    with pytest.raises(UnknownTypeError):
        parse_file("Nope", tmp_path / "nope.txt", registry=registry)


def test_file_closed_when_parse_fails(registry, monkeypatch, tmp_path):
    registry.declare("Count", ["n=int"])
    path = tmp_path / "counts.txt"
    path.write_text("1\nx\n", encoding="utf-8")

    opened = []
    real_parse_stream = record_parser.parse_stream_as

    def spy(cls, lines):
        opened.append(lines)
        return real_parse_stream(cls, lines)

    monkeypatch.setattr(record_parser, "parse_stream_as", spy)
    with pytest.raises(ValueConstructionError):
        parse_file("Count", path, registry=registry)
    assert opened[0].closed


def test_parse_file_detects_encoding(registry, person, tmp_path):
    path = tmp_path / "bom.txt"
    path.write_bytes("Crow:David:Phil:05/03/1968\r\n".encode("utf-8-sig"))

    rows = parse_file("Person", path, encoding=None, registry=registry)
    assert rows[0].first == "Crow"
    assert rows[0].dob == "05/03/1968"


def test_read_file_classmethod(person, person_file):
    rows = person.read_file(person_file)
    assert len(rows) == 2
    assert rows[1].last == "Marie"


def test_closed_handle_is_a_read_error(person, person_file):
    fh = person_file.open("r", encoding="utf-8")
    fh.close()

    with pytest.raises(StreamReadError) as info:
        person.read_stream(fh)
    assert isinstance(info.value, OSError)
    assert isinstance(info.value.__cause__, ValueError)

# src/colonrecord/parser/field_spec_parser.py

from __future__ import annotations
from typing import Iterable, List, Tuple, Union

from colonrecord.errors import FieldSpecError
from colonrecord.models.field_descriptor import FieldDescriptor
from colonrecord.models.record import RESERVED_NAMES


def parse_field_spec(spec: str) -> FieldDescriptor:
    """
    "name" / "name=Type" / "name=Type=constructor" を FieldDescriptor にする。

    例:
        "dob=datetime.date=fromisoformat"
            -> FieldDescriptor("dob", "datetime.date", "fromisoformat")
    """
    if not isinstance(spec, str):
        raise FieldSpecError(f"Field spec must be a string, got {type(spec).__name__}")

    parts = spec.split("=")
    if len(parts) > 3:
        raise FieldSpecError(f"Too many '=' in field spec: {spec!r}")

    name = parts[0]
    type_name = parts[1] if len(parts) > 1 else None
    constructor = parts[2] if len(parts) > 2 else None

    if not name.isidentifier():
        raise FieldSpecError(f"Invalid field name in spec {spec!r}")
    if name.startswith("_") or name in RESERVED_NAMES:
        raise FieldSpecError(f"Reserved field name: {name!r}")
    if type_name == "":
        raise FieldSpecError(f"Empty type name in spec {spec!r}")
    if constructor == "":
        constructor = None

    return FieldDescriptor(name=name, type_name=type_name, constructor_name=constructor)


def parse_field_specs(specs: Union[str, Iterable[str]]) -> Tuple[FieldDescriptor, ...]:
    """
    フィールド定義の並びをまとめて変換する。

    文字列1つを渡した場合は空白区切りのリストとして扱う。
    """
    if isinstance(specs, str):
        specs = specs.split()

    fields: List[FieldDescriptor] = []
    seen: set[str] = set()
    for spec in specs:
        desc = parse_field_spec(spec)
        if desc.name in seen:
            raise FieldSpecError(f"Duplicate field name: {desc.name!r}")
        seen.add(desc.name)
        fields.append(desc)
    return tuple(fields)

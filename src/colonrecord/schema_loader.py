# src/colonrecord/schema_loader.py
"""
JSON で書いたレコード型定義をまとめて declare する。

受け付ける形式:

    1) {"Person": ["first", "last", "dob=datetime.date=fromisoformat"]}
    2) {"Person": {"fields": [...], "delimiter": ","}}
    3) [{"type_name": "Person", "fields": [...], "delimiter_regex": "\\s*,\\s*"}]

delimiter はリテラル、delimiter_regex は正規表現として扱う (両方は不可)。
"""

from __future__ import annotations

import json
import logging
import re
from os import PathLike
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from colonrecord.errors import FileAccessError, SchemaFileError
from colonrecord.models.schema import DEFAULT_DELIMITER, Delimiter
from colonrecord.registry import SchemaRegistry, default_registry

_log = logging.getLogger("colonrecord.schema_loader")

_Entry = Tuple[str, List[str], Delimiter]


def _delimiter_from(item: dict, where: str) -> Delimiter:
    if "delimiter" in item and "delimiter_regex" in item:
        raise SchemaFileError(f"{where}: use either 'delimiter' or 'delimiter_regex', not both")
    if "delimiter_regex" in item:
        try:
            return re.compile(str(item["delimiter_regex"]))
        except re.error as exc:
            raise SchemaFileError(f"{where}: bad delimiter_regex: {exc}") from exc
    if "delimiter" in item:
        return str(item["delimiter"])
    return DEFAULT_DELIMITER


def _fields_from(value: Any, where: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SchemaFileError(f"{where}: 'fields' must be a list of strings")
    return value


def _iter_entries(raw: Any, filename: str) -> Iterator[_Entry]:
    # 1) / 2) dict 形式
    if isinstance(raw, dict):
        for type_name, value in raw.items():
            where = f"{filename}: {type_name}"
            if isinstance(value, list):
                yield str(type_name), _fields_from(value, where), DEFAULT_DELIMITER
            elif isinstance(value, dict):
                yield str(type_name), _fields_from(value.get("fields"), where), _delimiter_from(value, where)
            else:
                raise SchemaFileError(f"{where}: expected a list or an object")
        return

    # 3) list 形式
    if isinstance(raw, list):
        for idx, item in enumerate(raw):
            where = f"{filename}[{idx}]"
            if not isinstance(item, dict) or not item.get("type_name"):
                raise SchemaFileError(f"{where}: expected an object with 'type_name'")
            yield str(item["type_name"]), _fields_from(item.get("fields"), where), _delimiter_from(item, where)
        return

    raise SchemaFileError(f"Unsupported JSON format in {filename}")


def load_schema_file(
    path: Union[str, "PathLike[str]"],
    registry: Optional[SchemaRegistry] = None,
    *,
    replace: bool = False,
) -> List[type]:
    """定義ファイルを読み込んで宣言し、生成したレコードクラスを宣言順で返す。"""
    reg = default_registry if registry is None else registry
    path = Path(path)

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as exc:
        raise FileAccessError(str(path), exc) from exc
    except json.JSONDecodeError as exc:
        raise SchemaFileError(f"Invalid JSON in {path.name}: {exc}") from exc

    # 全部検証してから宣言する (途中まで登録された状態を残さない)
    entries = list(_iter_entries(raw, path.name))

    classes = [
        reg.declare(type_name, fields, delimiter=delimiter, replace=replace)
        for type_name, fields, delimiter in entries
    ]
    _log.debug("loaded %d record types from %s", len(classes), path)
    return classes

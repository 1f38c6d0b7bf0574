# src/colonrecord/parser/record_parser.py
"""
区切り文字テキスト → レコードオブジェクトの変換。

1行 = 1レコード。空行やコメント行も読み飛ばさずに1件として返す。
カラム i はスキーマの i 番目のフィールドに入り、余ったカラムは捨て、
足りないフィールドは未設定のまま残す。
"""

from __future__ import annotations

import io
import logging
from os import PathLike
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Union

from colonrecord.errors import FileAccessError, StreamReadError
from colonrecord.models.record import Record
from colonrecord.registry import SchemaRegistry, default_registry
from colonrecord.text_decoding import decode_bytes

_log = logging.getLogger("colonrecord.parser")

LineSource = Iterable[Union[str, bytes]]


def _resolve(registry: Optional[SchemaRegistry]) -> SchemaRegistry:
    return default_registry if registry is None else registry


def new_instance(type_name: str, *, registry: Optional[SchemaRegistry] = None) -> Record:
    """フィールド未設定のレコードを1つ作る。"""
    return _resolve(registry).record_class(type_name)()


def set_field(instance: Record, field_name: str, raw_value: Any) -> Any:
    return instance.set(field_name, raw_value)


def get_field(instance: Record, field_name: str) -> Any:
    return instance.get(field_name)


def _populate(cls: type, line: str) -> Record:
    record = cls()
    # zip で短い方に揃う = 余りカラムは無視、不足フィールドは未設定
    for descriptor, value in zip(cls.schema.fields, cls.schema.split(line)):
        record.set(descriptor.name, value)
    return record


def _read_lines(lines: LineSource) -> Iterator[str]:
    """
    読み込みの失敗を StreamReadError にして1行ずつ返す。

    閉じたファイルは OSError ではなく ValueError を出すのでそれも包む。
    UnicodeDecodeError も ValueError の一種。
    """
    try:
        it = iter(lines)
    except (OSError, ValueError) as exc:
        raise StreamReadError(f"Couldn't read input: {exc}") from exc

    while True:
        try:
            line = next(it)
            if isinstance(line, bytes):
                line = line.decode("utf-8")
        except StopIteration:
            return
        except (OSError, ValueError) as exc:
            raise StreamReadError(f"Couldn't read input: {exc}") from exc
        yield line


# ─────────────────────────────
# レコードクラス単位 (Record のクラスメソッドから使う)
# ─────────────────────────────
def parse_line_as(cls: type, line: str) -> Record:
    return _populate(cls, line)


def parse_stream_as(cls: type, lines: LineSource) -> List[Record]:
    """
    行の並び (開いたファイル、StringIO、list など) を先頭から1回だけ読み、
    1行につき1レコードのリストを入力順で返す。
    """
    rows: List[Record] = []
    for line in _read_lines(lines):
        rows.append(_populate(cls, line))
    _log.debug("parsed %d %s records", len(rows), cls.type_name)
    return rows


def parse_file_as(
    cls: type,
    path: Union[str, "PathLike[str]"],
    *,
    encoding: Optional[str] = "utf-8",
) -> List[Record]:
    """
    ファイルを開いて parse_stream_as する。

    encoding=None のときは中身のバイト列からエンコーディングを推定する。
    開けなかった場合は FileAccessError (元の OSError は __cause__)。
    """
    path = Path(path)

    if encoding is None:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise FileAccessError(str(path), exc) from exc
        text, detected = decode_bytes(raw)
        _log.debug("%s: using encoding %s", path, detected)
        return parse_stream_as(cls, io.StringIO(text))

    try:
        fh = path.open("r", encoding=encoding)
    except OSError as exc:
        raise FileAccessError(str(path), exc) from exc

    with fh:
        return parse_stream_as(cls, fh)


# ─────────────────────────────
# 型名指定 (登録簿から現在のクラスを引く)
# ─────────────────────────────
def parse_line(type_name: str, line: str, *, registry: Optional[SchemaRegistry] = None) -> Record:
    return parse_line_as(_resolve(registry).record_class(type_name), line)


def parse_stream(
    type_name: str,
    lines: LineSource,
    *,
    registry: Optional[SchemaRegistry] = None,
) -> List[Record]:
    return parse_stream_as(_resolve(registry).record_class(type_name), lines)


def parse_file(
    type_name: str,
    path: Union[str, "PathLike[str]"],
    *,
    encoding: Optional[str] = "utf-8",
    registry: Optional[SchemaRegistry] = None,
) -> List[Record]:
    # 型名の誤りはファイルを開く前に UnknownTypeError にする
    cls = _resolve(registry).record_class(type_name)
    return parse_file_as(cls, path, encoding=encoding)

# src/colonrecord/models/schema.py

from __future__ import annotations
from dataclasses import dataclass, field
import re
from typing import Dict, List, Tuple, Union

from colonrecord.errors import UnknownFieldError
from colonrecord.models.field_descriptor import FieldDescriptor

# str はリテラル区切り、コンパイル済みパターンは正規表現として split する
Delimiter = Union[str, re.Pattern]

DEFAULT_DELIMITER = ":"


@dataclass
class Schema:
    """
    1つのレコード型の定義。

    fields の並びがそのまま入力カラムの並び (0列目 → fields[0]) になる。
    delimiter だけは宣言後も差し替え可能。
    """
    type_name: str
    fields: Tuple[FieldDescriptor, ...]
    delimiter: Delimiter = DEFAULT_DELIMITER
    _by_name: Dict[str, FieldDescriptor] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.fields = tuple(self.fields)
        self._by_name = {f.name: f for f in self.fields}

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def has_field(self, name: str) -> bool:
        return name in self._by_name

    def descriptor(self, name: str) -> FieldDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownFieldError(self.type_name, name) from None

    def split(self, line: str) -> List[str]:
        """
        1行を現在の区切り文字でカラムに分割する。

        - 行末の改行は落としてから分割する
        - 末尾の空カラムは捨てる (空行はカラム0個になる)
        - クォートは特別扱いしない
        """
        return split_columns(line, self.delimiter)


def split_columns(line: str, delimiter: Delimiter) -> List[str]:
    raw = line.rstrip("\r\n")
    if isinstance(delimiter, str):
        cols = raw.split(delimiter)
    else:
        cols = delimiter.split(raw)
    # 正規表現のキャプチャグループが空振りすると None が入る
    while cols and (cols[-1] is None or cols[-1] == ""):
        cols.pop()
    return cols


def check_delimiter(pattern: object) -> Delimiter:
    """区切り文字として使える値か確認する (空でない str かコンパイル済み正規表現)。"""
    if isinstance(pattern, str):
        if not pattern:
            raise ValueError("Delimiter must not be empty")
        return pattern
    if isinstance(pattern, re.Pattern) and isinstance(pattern.pattern, str):
        return pattern
    raise TypeError(f"Delimiter must be a string or compiled str pattern, got {type(pattern).__name__}")

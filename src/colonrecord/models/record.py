# src/colonrecord/models/record.py

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Union
from os import PathLike

from colonrecord.errors import UnknownFieldError
from colonrecord.logic.value_construction import construct_value
from colonrecord.models.schema import Delimiter, Schema, check_delimiter

if TYPE_CHECKING:
    from colonrecord.registry import SchemaRegistry


class Record:
    """
    宣言されたレコード型すべての基底クラス。

    値は name -> value の dict に持つ。一度もセットされていないフィールドは
    「未設定」で、読むと None が返り as_dict() には含まれない。
    実際のクラスは make_record_class() がスキーマごとに生成する。
    """

    schema: Schema
    type_name: str = ""
    _registry: "SchemaRegistry"

    def __init__(self, **values: Any) -> None:
        self._values: Dict[str, Any] = {}
        for name, value in values.items():
            self.set(name, value)

    def __getattr__(self, name: str) -> Any:
        # プロパティ等で見つからなかった名前だけがここに来る
        if name.startswith("_"):
            raise AttributeError(name)
        raise UnknownFieldError(self.type_name, name)

    def get(self, name: str) -> Any:
        self.schema.descriptor(name)
        return self._values.get(name)

    def set(self, name: str, value: Any) -> Any:
        """
        フィールドに値をセットし、格納した値を返す。

        - value が None なら何もしない (欠けたカラムは未設定のまま)
        - コンストラクタ指定のあるフィールドは外部ファクトリを1回呼んで
          その戻り値を格納する
        """
        descriptor = self.schema.descriptor(name)
        if value is None:
            return self._values.get(name)
        if descriptor.has_constructor:
            value = construct_value(self._registry, descriptor, value)
        self._values[name] = value
        return value

    def is_set(self, name: str) -> bool:
        self.schema.descriptor(name)
        return name in self._values

    def as_dict(self) -> Dict[str, Any]:
        """セット済みのフィールドだけをスキーマ順で返す。"""
        return {n: self._values[n] for n in self.schema.field_names if n in self._values}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.type_name == other.type_name and self._values == other._values

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"{self.type_name}({inner})"

    # ─────────────────────────────
    # クラス単位の一括読み込み
    # ─────────────────────────────
    @classmethod
    def read_file(
        cls,
        path: Union[str, "PathLike[str]"],
        encoding: Optional[str] = "utf-8",
    ) -> List["Record"]:
        from colonrecord.parser.record_parser import parse_file_as

        return parse_file_as(cls, path, encoding=encoding)

    @classmethod
    def read_stream(cls, lines: Iterable[Union[str, bytes]]) -> List["Record"]:
        from colonrecord.parser.record_parser import parse_stream_as

        return parse_stream_as(cls, lines)

    @classmethod
    def parse_line(cls, line: str) -> "Record":
        from colonrecord.parser.record_parser import parse_line_as

        return parse_line_as(cls, line)

    @classmethod
    def delimiter(cls, pattern: Optional[Delimiter] = None) -> Delimiter:
        """区切り文字の取得 / 変更 (引数ありなら変更して新しい値を返す)。"""
        if pattern is not None:
            cls.schema.delimiter = check_delimiter(pattern)
        return cls.schema.delimiter


# フィールド名に使えない名前
RESERVED_NAMES = frozenset(
    name for name in dir(Record) if not name.startswith("_")
) | {"schema", "type_name"}


def _field_property(name: str) -> property:
    def getter(self: Record) -> Any:
        return self._values.get(name)

    def setter(self: Record, value: Any) -> None:
        self.set(name, value)

    return property(getter, setter, doc=f"{name} フィールド")


def make_record_class(schema: Schema, registry: "SchemaRegistry") -> type:
    """スキーマからレコードクラスを組み立てる。"""
    namespace: Dict[str, Any] = {
        "schema": schema,
        "type_name": schema.type_name,
        "_registry": registry,
        "__module__": __name__,
        "__qualname__": schema.type_name,
    }
    for descriptor in schema.fields:
        namespace[descriptor.name] = _field_property(descriptor.name)
    return type(schema.type_name, (Record,), namespace)

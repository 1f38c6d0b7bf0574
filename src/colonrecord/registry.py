# src/colonrecord/registry.py
"""
レコード型の登録簿。

型名 -> Schema / 生成済みレコードクラス の対応をプロセス内で保持する。
テストなどで独立した登録簿が欲しい場合は SchemaRegistry() を直接作る。
モジュール末尾の declare() などは default_registry に対する近道。

ロックは持たないので、複数スレッドから使う場合は起動時にまとめて
declare しておき、以後は読むだけにすること。
"""

from __future__ import annotations

import builtins
import importlib
import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from colonrecord.errors import DuplicateTypeError, UnknownTypeError
from colonrecord.models.record import make_record_class
from colonrecord.models.schema import DEFAULT_DELIMITER, Delimiter, Schema, check_delimiter
from colonrecord.parser.field_spec_parser import parse_field_specs

_log = logging.getLogger("colonrecord.registry")

FieldSpecs = Union[str, Iterable[str]]


class SchemaRegistry:
    def __init__(self) -> None:
        self._schemas: Dict[str, Schema] = {}
        self._classes: Dict[str, type] = {}
        # 値変換に使う外部ファクトリ型の短縮名
        self._factory_types: Dict[str, Any] = {}

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._schemas

    def type_names(self) -> List[str]:
        return list(self._schemas)

    # ─────────────────────────────
    # 宣言
    # ─────────────────────────────
    def declare(
        self,
        type_name: str,
        field_specs: FieldSpecs,
        *,
        delimiter: Delimiter = DEFAULT_DELIMITER,
        replace: bool = False,
    ) -> type:
        """
        レコード型を宣言し、生成したレコードクラスを返す。

        field_specs は "name" / "name=Type" / "name=Type=constructor" の並び
        (入力ファイルのカラム順)。同じ型名の再宣言は DuplicateTypeError。
        replace=True のときだけ上書きを許す。
        """
        if not isinstance(type_name, str) or not type_name:
            raise ValueError("Record type name must be a non-empty string")
        if type_name in self._schemas and not replace:
            raise DuplicateTypeError(type_name)

        fields = parse_field_specs(field_specs)
        schema = Schema(type_name=type_name, fields=fields, delimiter=check_delimiter(delimiter))
        cls = make_record_class(schema, self)

        self._schemas[type_name] = schema
        self._classes[type_name] = cls
        _log.debug("declared %s with fields %s", type_name, schema.field_names)
        return cls

    def declare_many(self, declarations: Mapping[str, FieldSpecs]) -> Dict[str, type]:
        """{型名: フィールド定義} をまとめて宣言する。"""
        # 途中まで登録された状態を残さないよう先に全部検証する (ジェネレータは一度だけ読む)
        prepared: List[Tuple[str, Tuple[str, ...]]] = []
        for type_name, specs in declarations.items():
            if not isinstance(type_name, str) or not type_name:
                raise ValueError("Record type name must be a non-empty string")
            if type_name in self._schemas:
                raise DuplicateTypeError(type_name)
            specs = tuple(specs.split()) if isinstance(specs, str) else tuple(specs)
            parse_field_specs(specs)
            prepared.append((type_name, specs))
        return {name: self.declare(name, specs) for name, specs in prepared}

    # ─────────────────────────────
    # 参照
    # ─────────────────────────────
    def get_schema(self, type_name: str) -> Schema:
        try:
            return self._schemas[type_name]
        except KeyError:
            raise UnknownTypeError(type_name) from None

    def record_class(self, type_name: str) -> type:
        try:
            return self._classes[type_name]
        except KeyError:
            raise UnknownTypeError(type_name) from None

    def get_delimiter(self, type_name: str) -> Delimiter:
        return self.get_schema(type_name).delimiter

    def set_delimiter(self, type_name: str, pattern: Delimiter) -> Delimiter:
        """
        区切り文字を差し替える。以後のパースにだけ効く。

        str はリテラル、コンパイル済み正規表現はそのまま split に使う。
        """
        schema = self.get_schema(type_name)
        schema.delimiter = check_delimiter(pattern)
        _log.debug("delimiter for %s set to %r", type_name, schema.delimiter)
        return schema.delimiter

    # ─────────────────────────────
    # 値変換用の外部型
    # ─────────────────────────────
    def register_type(self, name: str, factory: Any) -> None:
        """"Date" のような短縮名でファクトリ型を引けるようにする。"""
        self._factory_types[name] = factory

    def resolve_type(self, name: str) -> Any:
        """
        ファクトリ型名を実体に解決する。

        1. register_type() 済みの短縮名
        2. "int" などの組み込み名
        3. "datetime.date" のようなドット区切りの import パス
        """
        if name in self._factory_types:
            return self._factory_types[name]

        if "." not in name:
            if hasattr(builtins, name):
                return getattr(builtins, name)
            raise UnknownTypeError(name, kind="factory type")

        parts = name.split(".")
        # 長いモジュールパスから順に試す
        for i in range(len(parts) - 1, 0, -1):
            try:
                obj: Any = importlib.import_module(".".join(parts[:i]))
            except ImportError:
                continue
            try:
                for attr in parts[i:]:
                    obj = getattr(obj, attr)
            except AttributeError:
                break
            return obj

        raise UnknownTypeError(name, kind="factory type")


default_registry = SchemaRegistry()


def declare(type_name: str, field_specs: FieldSpecs, **kwargs: Any) -> type:
    return default_registry.declare(type_name, field_specs, **kwargs)


def declare_many(declarations: Mapping[str, FieldSpecs]) -> Dict[str, type]:
    return default_registry.declare_many(declarations)


def get_schema(type_name: str) -> Schema:
    return default_registry.get_schema(type_name)


def record_class(type_name: str) -> type:
    return default_registry.record_class(type_name)


def get_delimiter(type_name: str) -> Delimiter:
    return default_registry.get_delimiter(type_name)


def set_delimiter(type_name: str, pattern: Delimiter) -> Delimiter:
    return default_registry.set_delimiter(type_name, pattern)


def register_type(name: str, factory: Any) -> None:
    default_registry.register_type(name, factory)

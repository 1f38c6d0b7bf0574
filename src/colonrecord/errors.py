# src/colonrecord/errors.py

from __future__ import annotations


class ColonRecordError(Exception):
    """colonrecord が送出する例外の基底クラス。"""


class DuplicateTypeError(ColonRecordError):
    """同じレコード型名が二重に宣言された。"""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Record type already declared: {type_name!r}")
        self.type_name = type_name


class UnknownTypeError(ColonRecordError, KeyError):
    """宣言されていないレコード型名 / 解決できないファクトリ型名。"""

    def __init__(self, type_name: str, kind: str = "record type") -> None:
        super().__init__(f"Unknown {kind}: {type_name!r}")
        self.type_name = type_name

    def __str__(self) -> str:
        # KeyError は repr で包むので素のメッセージに戻す
        return str(self.args[0])


class UnknownFieldError(ColonRecordError, AttributeError):
    """スキーマに存在しないフィールド名でアクセスした。"""

    def __init__(self, type_name: str, field_name: str) -> None:
        super().__init__(f"{type_name} has no field {field_name!r}")
        self.type_name = type_name
        self.field_name = field_name


class FieldSpecError(ColonRecordError, ValueError):
    """フィールド定義文字列 (name=Type=ctor) が不正。"""


class FileAccessError(ColonRecordError, OSError):
    """入力ファイルを開けなかった。元の OSError は __cause__ に入る。"""

    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(f"Couldn't read {path}: {cause.strerror or cause}")
        self.path = path


class StreamReadError(ColonRecordError, OSError):
    """読み込み途中でストリームが失敗した。"""


class ValueConstructionError(ColonRecordError):
    """フィールド値の変換 (外部コンストラクタ呼び出し) に失敗した。"""

    def __init__(self, field_name: str, raw_value: str, reason: str) -> None:
        super().__init__(
            f"Could not construct value for field {field_name!r} "
            f"from {raw_value!r}: {reason}"
        )
        self.field_name = field_name
        self.raw_value = raw_value


class SchemaFileError(ColonRecordError, ValueError):
    """スキーマ定義ファイルの形式が不正。"""

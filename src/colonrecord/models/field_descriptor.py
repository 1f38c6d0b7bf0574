# src/colonrecord/models/field_descriptor.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FieldDescriptor:
    """
    レコードの1カラム分の定義。

    - name: アクセサ名として使うフィールド名
    - type_name: 値を変換する外部ファクトリ型の名前 (None なら生文字列のまま)
    - constructor_name: ファクトリ型のどの属性を呼ぶか
      (None なら型そのものを呼ぶ = 通常のコンストラクタ)
    """
    name: str
    type_name: Optional[str] = None
    constructor_name: Optional[str] = None

    @property
    def has_constructor(self) -> bool:
        return self.type_name is not None

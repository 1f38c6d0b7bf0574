# src/colonrecord/logic/value_construction.py

from __future__ import annotations
from typing import TYPE_CHECKING, Any

from colonrecord.errors import ValueConstructionError
from colonrecord.models.field_descriptor import FieldDescriptor

if TYPE_CHECKING:
    from colonrecord.registry import SchemaRegistry


def construct_value(registry: "SchemaRegistry", descriptor: FieldDescriptor, raw: Any) -> Any:
    """
    フィールドに指定された外部ファクトリを raw で1回呼び、その戻り値を返す。

    - 型名はレジストリ経由で解決する (解決できなければ UnknownTypeError)
    - constructor_name が無ければ型そのものを呼ぶ
    - ファクトリ側の例外は ValueConstructionError に包んで投げ直す
    """
    factory_type = registry.resolve_type(descriptor.type_name)  # type: ignore[arg-type]

    if descriptor.constructor_name is None:
        factory = factory_type
    else:
        factory = getattr(factory_type, descriptor.constructor_name, None)
        if factory is None:
            raise ValueConstructionError(
                descriptor.name,
                raw,
                f"{descriptor.type_name} has no constructor {descriptor.constructor_name!r}",
            )

    if not callable(factory):
        raise ValueConstructionError(descriptor.name, raw, f"{descriptor.type_name} is not callable")

    try:
        return factory(raw)
    except Exception as exc:
        raise ValueConstructionError(descriptor.name, raw, str(exc) or type(exc).__name__) from exc

from typing import Any, Dict, Optional, Type, TypeVar

T = TypeVar("T")


class Annotations:
    """
    Per-object fact store keyed by the fact's type.

    At most one live value is kept per type; setting a fact of a type that
    is already present replaces the old value.
    """

    def __init__(self):
        self._facts: Dict[type, Any] = {}

    def set(self, fact: Any, kind: Optional[type] = None) -> None:
        self._facts[kind or type(fact)] = fact

    def get(self, kind: Type[T]) -> Optional[T]:
        return self._facts.get(kind)

    def remove(self, kind: type) -> None:
        self._facts.pop(kind, None)

    def __contains__(self, kind: type) -> bool:
        return kind in self._facts

    def __len__(self) -> int:
        return len(self._facts)

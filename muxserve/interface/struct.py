from typing import Any

from msgspec import Struct
from msgspec.structs import asdict as struct_asdict
from msgspec.structs import replace as struct_replace
from typing_extensions import Self, dataclass_transform


class Base(Struct):
    "Base Model for all internal struct"

    def asdict(self, skip_none: bool = False) -> dict[str, Any]:
        if not skip_none:
            return struct_asdict(self)
        return {
            f: val
            for f in self.__struct_fields__
            if (val := getattr(self, f)) is not None
        }

    def replace(self, /, **changes: Any) -> Self:
        return struct_replace(self, **changes)


@dataclass_transform(frozen_default=True)
class Record(Base, frozen=True, gc=False, cache_hash=True): ...  # type: ignore

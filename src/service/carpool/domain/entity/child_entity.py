from typing import Optional

import attrs


@attrs.define
class Child:
    id: str
    name: str
    family_id: str
    age: Optional[int] = None

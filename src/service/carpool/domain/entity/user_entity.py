from typing import Optional

import attrs


@attrs.define
class User:
    id: str
    email: str
    name: str
    timezone: Optional[str] = None

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr


class UploadClaims(BaseModel):
    """Decoded payload of an upload token.

    Claims are kept whole: two tokens target the same upload only when every
    field matches, so the admission key covers all of them. The key is built
    from the payload as decoded, before any field coercion.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    exp: Optional[float] = None

    _payload: Dict[str, Any] = PrivateAttr(default_factory=dict)

    def __init__(self, **data: Any) -> None:
        super().__init__(**data)
        self._payload = dict(data)

    def admission_key(self) -> str:
        return json.dumps(self._payload, sort_keys=True, separators=(",", ":"), default=str)

"""Resolution result model."""

from pydantic import BaseModel

from storefront.app.models.common import MatchedBy
from storefront.app.models.versions import Version


class ResolutionResult(BaseModel):
    """Outcome of a version resolution. Computed, never persisted."""

    version: Version
    matched_by: MatchedBy
    score: int = 0
    matched_fields: tuple[str, ...] = ()

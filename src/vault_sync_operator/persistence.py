"""kopf state storage that keeps Secret contents out of annotations."""

from __future__ import annotations

from typing import Any

import kopf

from .constants import KOPF_STORAGE_PREFIX
from .utils.secrets import content_version, decode_secret_data


class SecretSafeDiffBaseStorage(kopf.AnnotationsDiffBaseStorage):
    """Last-handled configuration with Secret data replaced by its digest.

    The digest still changes whenever the data does, so kopf keeps
    detecting updates of Secret targets.
    """

    def build(self, *, body: Any, extra_fields: Any = None) -> Any:
        essence = super().build(body=body, extra_fields=extra_fields)
        for field in ("data", "stringData"):
            if field in essence:
                essence[field] = content_version(decode_secret_data(essence[field]))
        return essence


def configure_storage(settings: kopf.OperatorSettings) -> None:
    """Keep kopf progress and diff bases in annotations under our prefix."""
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=KOPF_STORAGE_PREFIX)
    settings.persistence.diffbase_storage = SecretSafeDiffBaseStorage(prefix=KOPF_STORAGE_PREFIX)

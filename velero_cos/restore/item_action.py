"""Restore item action enforcing the minimum COS disk size on PVCs and PVs."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple

from kubernetes.utils import parse_quantity

from velero_cos.config import (
    KIND_KEY,
    MIN_REQ_VOL_SIZE_BYTES,
    MIN_REQ_VOL_SIZE_STRING,
    PERSISTENT_VOLUME_CLAIM_KIND,
    PERSISTENT_VOLUME_KIND,
    RESTORE_ANNOTATION,
)
from velero_cos.core.errors import RestoreItemError
from velero_cos.core.logging import log_context


@dataclass(frozen=True)
class ResourceSelector:
    included_resources: Tuple[str, ...] = ()


def _storage_bytes(resources: Optional[Mapping[str, Any]], kind: str) -> Decimal:
    raw = (resources or {}).get("storage")
    if raw is None:
        return Decimal(0)
    try:
        return parse_quantity(raw)
    except ValueError as exc:
        raise RestoreItemError(f"invalid storage quantity {raw!r} on {kind}") from exc


class RestoreItemAction:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.log = logger or logging.getLogger(__name__)

    def applies_to(self) -> ResourceSelector:
        return ResourceSelector(included_resources=("pvc", "persistentvolume"))

    def execute(self, item: Mapping[str, Any]) -> dict:
        """
        Return a copy of ``item`` adjusted for restore into COS-backed disks.

        PersistentVolumeClaims and PersistentVolumes asking for 10Gi or less
        are raised to exactly 10Gi and their status is cleared. Both kinds are
        annotated; any other kind is returned unchanged.

        Raises:
            RestoreItemError: If the item has no kind or an unparseable size
        """
        kind = item.get(KIND_KEY)
        if not isinstance(kind, str):
            raise RestoreItemError("restore item has no kind")

        output = copy.deepcopy(dict(item))
        if kind not in (PERSISTENT_VOLUME_CLAIM_KIND, PERSISTENT_VOLUME_KIND):
            self.log.info("Nothing need to do for %s, skip", kind)
            return output

        metadata = output.setdefault("metadata", {})
        with log_context(self.log, kind=kind, item=metadata.get("name", "")):
            annotations = metadata.get("annotations") or {}
            annotations[RESTORE_ANNOTATION] = "1"
            metadata["annotations"] = annotations

            spec = output.setdefault("spec", {})
            if kind == PERSISTENT_VOLUME_CLAIM_KIND:
                self._resize_claim(spec, output)
            else:
                self._resize_volume(spec, output)
        return output

    def _resize_claim(self, spec: dict, output: dict) -> None:
        requests = (spec.get("resources") or {}).get("requests")
        if _storage_bytes(requests, PERSISTENT_VOLUME_CLAIM_KIND) > MIN_REQ_VOL_SIZE_BYTES:
            return
        self.log.warning(
            "COS disk volume requires at least %s, resizing persistentVolumeClaim",
            MIN_REQ_VOL_SIZE_STRING,
        )
        spec["resources"] = {"requests": {"storage": MIN_REQ_VOL_SIZE_STRING}}
        output["status"] = {}

    def _resize_volume(self, spec: dict, output: dict) -> None:
        if _storage_bytes(spec.get("capacity"), PERSISTENT_VOLUME_KIND) > MIN_REQ_VOL_SIZE_BYTES:
            return
        self.log.warning(
            "COS disk volume requires at least %s, resizing persistentVolume",
            MIN_REQ_VOL_SIZE_STRING,
        )
        spec["capacity"] = {"storage": MIN_REQ_VOL_SIZE_STRING}
        output["status"] = {}

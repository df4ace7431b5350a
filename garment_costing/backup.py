"""
Backup export / import.

Backup file layout (JSON, same as the browser app writes):

    {
      "schema": "garment-costing-backup-v2",
      "exportedAt": "2026-03-04T09:15:00.000000Z",
      "appVersion": "2.0.0",
      "calcVersion": "factorySheet_v1",
      "items": [
        {
          "id": ..., "createdAt": ..., "appVersion": ..., "calcVersion": ...,
          "styleName": ..., "yarnDesc": ..., "composition": ..., "gauge": 7,
          "weightGm": 285, "currency": "$",
          "photo": {"base64": "data:image/jpeg;base64,...", "type": ..., "width": ..., "height": ...} | null,
          "inputs": {"yarnPricePerLb": ..., "wastagePct": ..., ...},
          "computed": {"lbsPerDoz": ..., "fobPerPc": ..., ...}
        }
      ]
    }

Photos are inlined as base64 data URLs on export and turned back into bytes
on import. Import is all-or-nothing: any malformed item rejects the file.
"""

import base64
import binascii
import json
import logging
import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from .config import settings
from .errors import MalformedImport
from .schemas import CostingRecord, PhotoRef
from .store import CostingStore

logger = logging.getLogger(__name__)

INPUT_KEYS = {
    "yarn_price_per_lb": "yarnPricePerLb",
    "wastage_pct": "wastagePct",
    "accessories_cost_doz": "accessoriesCostDoz",
    "fabric_doz": "fabricDoz",
    "fabric_cost_doz": "fabricCostDoz",
    "fabric_attach_cost_doz": "fabricAttachCostDoz",
    "timing_min": "timingMin",
    "cm_doz": "cmDoz",
    "roc_pct": "rocPct",
}

COMPUTED_KEYS = {
    "lbs_per_doz": "lbsPerDoz",
    "lbs_with_wastage": "lbsWithWastage",
    "yarn_cost_doz": "yarnCostDoz",
    "total_doz": "totalDoz",
    "fob_per_pc": "fobPerPc",
    "final_per_pc": "finalPerPc",
    "roc_pct": "rocPct",
}

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]*)(;[^,]*)?;base64,(?P<data>.*)$", re.DOTALL)


# --- Export ---

def export_backup(store: CostingStore) -> dict:
    """Every stored record, newest first, in the portable backup layout."""
    records = store.list_records()
    return {
        "schema": settings.BACKUP_SCHEMA,
        "exportedAt": _iso(datetime.utcnow()),
        "appVersion": settings.APP_VERSION,
        "calcVersion": settings.CALC_VERSION,
        "items": [record_to_item(r) for r in records],
    }


def dumps_backup(store: CostingStore) -> str:
    return json.dumps(export_backup(store), indent=2, ensure_ascii=False)


def record_to_item(record: CostingRecord) -> dict:
    photo = None
    if record.photo is not None:
        photo = {
            "base64": photo_to_data_url(record.photo),
            "type": record.photo.mime_type,
            "width": record.photo.width,
            "height": record.photo.height,
        }
    return {
        "id": record.id,
        "createdAt": _iso(record.created_at),
        "updatedAt": _iso(record.created_at),
        "appVersion": record.app_version,
        "calcVersion": record.calc_version,
        "styleName": record.style_name,
        "yarnDesc": record.yarn_desc,
        "composition": record.composition,
        "gauge": record.gauge,
        "weightGm": record.weight_gm,
        "currency": record.currency,
        "photo": photo,
        "inputs": {INPUT_KEYS[k]: v for k, v in record.inputs.model_dump().items()},
        "computed": {COMPUTED_KEYS[k]: v for k, v in record.computed.model_dump().items()},
    }


def photo_to_data_url(photo: PhotoRef) -> str:
    encoded = base64.b64encode(photo.data).decode("ascii")
    return f"data:{photo.mime_type or 'image/jpeg'};base64,{encoded}"


# --- Import ---

def parse_backup(text) -> list[CostingRecord]:
    """
    Parse a backup document into records without touching the store.

    Raises:
        MalformedImport: not JSON, no items list, or an item fails shape checks.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedImport("Invalid backup file.") from e

    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise MalformedImport("Invalid backup file.")

    records = []
    for position, raw in enumerate(data["items"]):
        try:
            records.append(item_to_record(raw))
        except (ValidationError, KeyError, TypeError, ValueError, binascii.Error) as e:
            raise MalformedImport(f"Invalid backup file: item {position + 1} is malformed.") from e
    return records


def import_backup(text, store: CostingStore) -> list[CostingRecord]:
    """Parse and bulk-store a backup. Nothing is stored if any item is malformed."""
    records = parse_backup(text)
    store.bulk_put_records(records)
    logger.info("Imported %d costing(s) from backup", len(records))
    return records


def item_to_record(item: dict) -> CostingRecord:
    if not isinstance(item, dict):
        raise TypeError("backup item must be an object")

    inputs = _section(item, "inputs")
    computed = dict(_section(item, "computed"))
    # Older backups did not store the applied ROC with the computed figures
    computed.setdefault("rocPct", inputs.get("rocPct", settings.FIXED_ROC_PCT))

    return CostingRecord.model_validate({
        "id": item["id"],
        "created_at": _parse_iso(item["createdAt"]),
        "app_version": item.get("appVersion") or settings.APP_VERSION,
        "calc_version": item.get("calcVersion") or settings.CALC_VERSION,
        "style_name": item["styleName"],
        "yarn_desc": item.get("yarnDesc") or "",
        "composition": item.get("composition") or "",
        "gauge": item["gauge"],
        "weight_gm": item["weightGm"],
        "currency": item.get("currency") or settings.DEFAULT_CURRENCY,
        "photo": _photo_from_item(item.get("photo")),
        "inputs": {k: inputs[alias] for k, alias in INPUT_KEYS.items() if inputs.get(alias) is not None},
        "computed": {k: computed.get(alias) for k, alias in COMPUTED_KEYS.items()},
    })


def _section(item: dict, key: str) -> dict:
    value = item.get(key) or {}
    if not isinstance(value, dict):
        raise TypeError(f"backup item {key} must be an object")
    return value


def _photo_from_item(photo: Optional[dict]) -> Optional[PhotoRef]:
    if not photo:
        return None
    if not isinstance(photo, dict):
        raise TypeError("backup item photo must be an object")
    if not photo.get("base64"):
        return None
    data_url = str(photo["base64"])
    match = _DATA_URL.match(data_url)
    if match:
        mime = match.group("mime") or "application/octet-stream"
        payload = match.group("data")
    else:
        # Bare base64 without the data: prefix
        mime = None
        payload = data_url
    return PhotoRef(
        data=base64.b64decode(payload, validate=True),
        mime_type=photo.get("type") or mime or "image/jpeg",
        width=photo.get("width") or None,
        height=photo.get("height") or None,
    )


def _iso(value: datetime) -> str:
    """UTC ISO-8601 with a Z suffix, like the browser app writes."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def _parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp into naive UTC (the store's convention)."""
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed

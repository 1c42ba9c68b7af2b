"""
Scents and vessels offered in the custom candle builder.

Both live in Supabase (``candle_scents`` and ``candle_vessels``) and are
edited from the admin pages.
"""

from typing import Any

from rich.console import Console

from lakay.errors import ValidationError
from lakay.models import CandleScent, CandleVessel, is_blank, require_fields
from lakay.pricing import to_number

console = Console()

SCENTS_TABLE = "candle_scents"
VESSELS_TABLE = "candle_vessels"


def _present(data: dict, *id_keys: str) -> dict:
    """Drop id keys and keys sent as null so model defaults apply."""
    skip = {"id", *id_keys}
    return {k: v for k, v in data.items() if v is not None and k not in skip}


def _merge(store, table: str, model, row_id: Any, changes: dict, id_key: str) -> dict:
    current = store.get_row(table, row_id)
    merged = model.model_validate({**current, **_present(changes, id_key)})
    return merged.model_dump(exclude={"id"})


# =============================================================================
# SCENTS
# =============================================================================


def list_scents(store, available_only: bool = False) -> list[dict]:
    """Scents in display order; optionally only those on offer."""
    filters = {"is_available": True} if available_only else None
    return store.list_rows(SCENTS_TABLE, filters=filters, order_by="display_order")


def create_scent(store, data: dict) -> dict:
    """
    Add a scent.

    Raises:
        ValidationError: name, name_english, notes or description missing
    """
    require_fields(data, ["name", "name_english", "notes", "description"])
    scent = CandleScent.model_validate(_present(data))
    row = store.insert_row(SCENTS_TABLE, scent.model_dump(exclude={"id"}))
    console.print(f"[green]✓ Scent added: {scent.name}[/green]")
    return row


def update_scent(store, scent_id: Any, changes: dict) -> dict:
    if is_blank(scent_id):
        raise ValidationError("Scent ID is required", ["scent_id"])
    payload = _merge(store, SCENTS_TABLE, CandleScent, scent_id, changes, "scent_id")
    row = store.update_row(SCENTS_TABLE, scent_id, payload)
    console.print(f"[green]✓ Scent updated: {row.get('name', scent_id)}[/green]")
    return row


def delete_scent(store, scent_id: Any) -> bool:
    if is_blank(scent_id):
        raise ValidationError("Scent ID is required", ["id"])
    return store.delete_row(SCENTS_TABLE, scent_id)


# =============================================================================
# VESSELS
# =============================================================================


def list_vessels(store, available_only: bool = False) -> list[dict]:
    """Vessels by name; ``available_only`` also hides anything out of stock."""
    if not available_only:
        return store.list_rows(VESSELS_TABLE, order_by="name")
    rows = store.list_rows(VESSELS_TABLE, filters={"is_available": True}, order_by="name")
    return [row for row in rows if to_number(row.get("stock_quantity")) > 0]


def create_vessel(store, data: dict) -> dict:
    """
    Add a vessel.

    Raises:
        ValidationError: name, color, size, price or image_url missing
            (a zero price counts as missing)
    """
    missing = [key for key in ("name", "color", "size") if is_blank(data.get(key))]
    if to_number(data.get("price")) <= 0:
        missing.append("price")
    if is_blank(data.get("image_url")):
        missing.append("image_url")
    if missing:
        raise ValidationError("Missing required fields", missing)

    vessel = CandleVessel.model_validate(_present(data))
    row = store.insert_row(VESSELS_TABLE, vessel.model_dump(exclude={"id"}))
    console.print(f"[green]✓ Vessel added: {vessel.name}[/green]")
    return row


def update_vessel(store, vessel_id: Any, changes: dict) -> dict:
    if is_blank(vessel_id):
        raise ValidationError("Vessel ID is required", ["vessel_id"])
    payload = _merge(store, VESSELS_TABLE, CandleVessel, vessel_id, changes, "vessel_id")
    row = store.update_row(VESSELS_TABLE, vessel_id, payload)
    console.print(f"[green]✓ Vessel updated: {row.get('name', vessel_id)}[/green]")
    return row


def delete_vessel(store, vessel_id: Any) -> bool:
    if is_blank(vessel_id):
        raise ValidationError("Vessel ID is required", ["id"])
    deleted = store.delete_row(VESSELS_TABLE, vessel_id)
    if deleted:
        console.print(f"[green]✓ Vessel deleted: {vessel_id}[/green]")
    return deleted

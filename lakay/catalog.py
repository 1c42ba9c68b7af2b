"""
Product catalog: admin CRUD, photo upload, spreadsheet bulk import and
marketplace CSV export.
"""

import csv
import io
import uuid
from pathlib import PurePosixPath
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from lakay.errors import ValidationError
from lakay.models import Product, is_blank
from lakay.pricing import to_number

console = Console()

# Optional columns stored as NULL rather than empty strings
NULLABLE_FIELDS = ("original_price", "fragrance", "size")

CSV_FORMATS = {
    "generic": (
        ["ID", "SKU", "Name", "Description", "Price", "Category", "Image URL", "Stock", "Type"],
        lambda p: [p["id"], p["sku"], p["name"], p["description"], p["price"],
                   p["category"], p["image_url"], p["stock"], p["type"]],
    ),
    "tiktok": (
        ["SKU", "Product Name", "Description", "Price", "Category", "Image URL", "Stock Quantity"],
        lambda p: [p["sku"], p["name"], p["description"], p["price"],
                   p["category"], p["image_url"], p["stock"]],
    ),
    "etsy": (
        ["SKU", "Title", "Description", "Price", "Quantity", "Tags", "Category", "Image 1"],
        lambda p: [p["sku"], p["name"], p["description"], p["price"], p["stock"],
                   "candle, handmade candle, soy candle", p["category"], p["image_url"]],
    ),
}


def list_products(store, category: Optional[str] = None, available_only: bool = False) -> list[dict]:
    return store.list_products(category=category, available_only=available_only)


def save_product(store, data: dict, product_id: Optional[str] = None) -> dict:
    """
    Create or update a product.

    Raises:
        ValidationError: if name or price is missing (a zero price counts as missing)
    """
    missing = []
    if is_blank(data.get("name")):
        missing.append("name")
    if to_number(data.get("price")) <= 0:
        missing.append("price")
    if missing:
        raise ValidationError("Missing required fields", missing)

    product = Product.model_validate({k: v for k, v in data.items() if k != "id"})
    row = product.model_dump(exclude={"id"})
    for key in NULLABLE_FIELDS:
        if is_blank(row.get(key)) or row.get(key) == 0:
            row[key] = None

    if product_id:
        saved = store.update_row("products", product_id, row)
        console.print(f"[green]✓ Product updated: {product.name}[/green]")
    else:
        saved = store.insert_row("products", row)
        console.print(f"[green]✓ Product created: {product.name}[/green]")
    return saved


def delete_product(store, product_id: str) -> bool:
    deleted = store.delete_row("products", product_id)
    if deleted:
        console.print(f"[green]✓ Product deleted: {product_id}[/green]")
    return deleted


def upload_product_image(store, filename: str, data: bytes, content_type: str) -> str:
    ext = PurePosixPath(filename).suffix or ".jpg"
    return store.upload_media(f"products/{uuid.uuid4().hex}{ext}", data, content_type)


def _export_row(product: dict) -> dict[str, Any]:
    return {
        "id": product.get("id", ""),
        "sku": product.get("sku") or "",
        "name": product.get("name", ""),
        "description": product.get("description") or "",
        "price": product.get("price", ""),
        "category": product.get("category") or "",
        "image_url": product.get("image_url") or "",
        "stock": product.get("stock_quantity", 0),
        "type": "candle",
    }


def export_products_csv(products: list[dict], platform: str = "generic") -> str:
    """
    Render products as CSV for a marketplace (generic, tiktok or etsy).

    Every cell is quoted.
    """
    if platform not in CSV_FORMATS:
        platform = "generic"
    header, to_cells = CSV_FORMATS[platform]

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(header)
    for product in products:
        writer.writerow(to_cells(_export_row(product)))
    return buffer.getvalue()


# =============================================================================
# BULK IMPORT
# =============================================================================

BULK_REQUIRED_FIELDS = ("name", "description", "category", "price")


def bulk_import_products(store, rows: Any) -> dict:
    """
    Save spreadsheet rows as products, skipping the ones that fail validation.

    Row numbers in the error list count the header as row 1.

    Raises:
        ValidationError: if ``rows`` is not a list
    """
    if not isinstance(rows, list):
        raise ValidationError("Invalid product data provided", ["products"])

    imported: list[dict] = []
    errors: list[str] = []
    for index, data in enumerate(rows):
        row_number = index + 2
        if not isinstance(data, dict) or any(is_blank(data.get(f)) for f in BULK_REQUIRED_FIELDS):
            fields = ", ".join(BULK_REQUIRED_FIELDS)
            errors.append(f"Row {row_number}: Missing required fields ({fields})")
            continue
        if to_number(data.get("price")) <= 0:
            errors.append(f"Row {row_number}: Price must be greater than 0")
            continue
        try:
            imported.append(save_product(store, data))
        except (ValidationError, PydanticValidationError) as e:
            errors.append(f"Row {row_number}: {e}")

    failed = len(errors)
    if imported:
        message = f"Successfully imported {len(imported)} products"
        if failed:
            message += f" ({failed} failed)"
        console.print(f"[green]✓ {message}[/green]")
    else:
        message = "No products were imported due to validation errors"
        console.print(f"[yellow]Warning: {message}[/yellow]")

    result = {
        "success": bool(imported),
        "message": message,
        "products": imported,
        "imported": len(imported),
        "failed": failed,
    }
    if errors:
        result["errors"] = errors
    return result

"""
Supabase store for the shop tables.

All admin dashboards and storefront flows read and write through this class.
Row-level rules live in the hosted database; this layer only issues queries.
"""

from typing import Any, Optional

from rich.console import Console
from supabase import Client, create_client

from config.settings import SupabaseConfig
from lakay.errors import NotFoundError, StoreError

console = Console()

# Tables counted by get_stats()
STAT_TABLES = [
    "products",
    "custom_orders",
    "invoices",
    "subscriptions",
    "workshop_sessions",
    "workshop_bookings",
]


class SupabaseStore:
    """
    Thin query layer over the Supabase client.

    - Generic row CRUD for any table
    - A few catalog helpers used by the storefront and CLI
    - Media uploads to the storage bucket
    """

    def __init__(
        self,
        supabase_config: Optional[SupabaseConfig] = None,
        client: Optional[Client] = None,
    ):
        """
        Initialize the store.

        Args:
            supabase_config: URL/key/bucket settings (defaults read the environment)
            client: Pre-built client, used as-is when given
        """
        self.config = supabase_config or SupabaseConfig()

        if client is None:
            if not self.config.is_configured:
                raise ValueError(
                    "Supabase credentials required. Set SUPABASE_URL and SUPABASE_KEY "
                    "environment variables or pass them to the constructor."
                )
            client = create_client(self.config.url, self.config.key)

        self.client: Client = client
        self.bucket_name = self.config.bucket_name

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    def list_rows(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        columns: str = "*",
    ) -> list[dict]:
        """
        Fetch rows from a table.

        Args:
            table: Table (or view) name
            filters: Column equality filters
            order_by: Column to sort on
            descending: Sort direction
            limit: Maximum number of rows

        Returns:
            List of row dicts
        """
        try:
            query = self.client.table(table).select(columns)
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit:
                query = query.limit(limit)
            result = query.execute()
        except Exception as e:
            console.print(f"[red]Error fetching {table}: {e}[/red]")
            raise StoreError(str(e)) from e
        return result.data or []

    def get_row(
        self, table: str, row_id: Any, id_column: str = "id", columns: str = "*"
    ) -> dict:
        """Get a single row by id. Raises NotFoundError if missing."""
        rows = self.list_rows(table, filters={id_column: row_id}, limit=1, columns=columns)
        if not rows:
            raise NotFoundError(f"{table} row not found: {row_id}")
        return rows[0]

    def find_row(self, table: str, **filters: Any) -> Optional[dict]:
        """Get the first row matching the filters, or None."""
        rows = self.list_rows(table, filters=filters, limit=1)
        return rows[0] if rows else None

    def insert_row(self, table: str, data: dict) -> dict:
        """Insert one row and return it as stored."""
        rows = self.insert_rows(table, [data])
        return rows[0] if rows else data

    def insert_rows(self, table: str, rows: list[dict]) -> list[dict]:
        if not rows:
            return []
        try:
            result = self.client.table(table).insert(rows).execute()
        except Exception as e:
            console.print(f"[red]Error inserting into {table}: {e}[/red]")
            raise StoreError(str(e)) from e
        return result.data or []

    def upsert_row(self, table: str, data: dict, on_conflict: str = "id") -> dict:
        try:
            result = self.client.table(table).upsert(data, on_conflict=on_conflict).execute()
        except Exception as e:
            console.print(f"[red]Error saving {table}: {e}[/red]")
            raise StoreError(str(e)) from e
        return result.data[0] if result.data else data

    def update_row(self, table: str, row_id: Any, data: dict, id_column: str = "id") -> dict:
        """Update one row by id and return the updated row."""
        rows = self.update_where(table, data, **{id_column: row_id})
        if not rows:
            raise NotFoundError(f"{table} row not found: {row_id}")
        return rows[0]

    def update_where(self, table: str, data: dict, **filters: Any) -> list[dict]:
        try:
            query = self.client.table(table).update(data)
            for column, value in filters.items():
                query = query.eq(column, value)
            result = query.execute()
        except Exception as e:
            console.print(f"[red]Error updating {table}: {e}[/red]")
            raise StoreError(str(e)) from e
        return result.data or []

    def delete_row(self, table: str, row_id: Any, id_column: str = "id") -> bool:
        return bool(self.delete_where(table, **{id_column: row_id}))

    def delete_where(self, table: str, **filters: Any) -> list[dict]:
        try:
            query = self.client.table(table).delete()
            for column, value in filters.items():
                query = query.eq(column, value)
            result = query.execute()
        except Exception as e:
            console.print(f"[red]Error deleting from {table}: {e}[/red]")
            raise StoreError(str(e)) from e
        return result.data or []

    def count_rows(self, table: str, **filters: Any) -> int:
        try:
            query = self.client.table(table).select("id", count="exact")
            for column, value in filters.items():
                query = query.eq(column, value)
            result = query.execute()
        except Exception as e:
            raise StoreError(str(e)) from e
        return result.count or 0

    # ------------------------------------------------------------------
    # Catalog helpers
    # ------------------------------------------------------------------

    def list_products(
        self,
        category: Optional[str] = None,
        available_only: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        Retrieve products, newest first.

        Args:
            category: Filter by category (optional)
            available_only: Only products marked available
            limit: Maximum number of products to return
        """
        filters: dict[str, Any] = {}
        if category:
            filters["category"] = category
        if available_only:
            filters["is_available"] = True
        return self.list_rows(
            "products", filters=filters, order_by="created_at", descending=True, limit=limit
        )

    def get_stats(self) -> dict:
        """
        Get database statistics.

        Returns:
            Dict with row counts, products by category and orders by status
        """
        counts = {table: self.count_rows(table) for table in STAT_TABLES}

        by_category: dict[str, int] = {}
        for p in self.list_rows("products", columns="category"):
            cat = p.get("category") or "uncategorized"
            by_category[cat] = by_category.get(cat, 0) + 1

        by_status: dict[str, int] = {}
        for o in self.list_rows("custom_orders", columns="status"):
            status = o.get("status") or "unknown"
            by_status[status] = by_status.get(status, 0) + 1

        return {
            "counts": counts,
            "products_by_category": by_category,
            "orders_by_status": by_status,
        }

    # ------------------------------------------------------------------
    # Storage bucket
    # ------------------------------------------------------------------

    def upload_media(self, storage_path: str, data: bytes, content_type: str) -> str:
        """
        Upload a file to the media bucket.

        Returns:
            Public URL of the uploaded file
        """
        try:
            self.client.storage.from_(self.bucket_name).upload(
                storage_path,
                data,
                {"content-type": content_type, "upsert": "true"},
            )
        except Exception as e:
            console.print(f"[red]Upload failed for {storage_path}: {e}[/red]")
            raise StoreError(str(e)) from e
        console.print(f"[dim]  Uploaded: {storage_path}[/dim]")
        return self.get_public_url(storage_path)

    def get_public_url(self, storage_path: str) -> str:
        return self.client.storage.from_(self.bucket_name).get_public_url(storage_path)

"""
Vessel styles and vessel images kept in quota-bounded key/value storage.

Images are the expensive part: a handful of photos as data URLs gets close
to the storage budget, so saving falls back through progressively more
desperate strategies and loading walks a chain of backup keys.

Save chain:
    main + _backup_1 + _backup_2 (compressed first when over threshold)
    -> _emergency_<ms> key
    -> one vessel-image-<id>-<ms> key per image

Load chain:
    main -> _backup_1 -> _backup_2 -> newest emergency keys
    -> vessel-image-* keys -> {}

There is no atomicity: a failure half way through leaves whatever was
already written, and the load chain is what makes that survivable.
"""

import json
import re
import time
from datetime import datetime, timezone
from typing import Any, Optional

from blinker import Namespace
from PIL import UnidentifiedImageError
from rich.console import Console

from config.settings import VesselStorageConfig
from lakay.errors import ValidationError
from lakay.models import VesselStyle

from .compression import compress_images, image_bytes_to_data_url
from .storage import KeyValueStorage

console = Console()

# Storage keys
VESSEL_STORAGE_KEY = "limen-lakay-vessels"
VESSEL_IMAGES_STORAGE_KEY = "limen-lakay-vessel-images"
BACKUP_KEYS = [
    VESSEL_IMAGES_STORAGE_KEY + "_backup_1",
    VESSEL_IMAGES_STORAGE_KEY + "_backup_2",
]
TIMESTAMP_KEY = VESSEL_IMAGES_STORAGE_KEY + "_timestamp"
EMERGENCY_PREFIX = VESSEL_IMAGES_STORAGE_KEY + "_emergency_"
INDIVIDUAL_PREFIX = "vessel-image-"
INDIVIDUAL_KEY_PATTERN = re.compile(r"^vessel-image-(?P<id>.+)-(?P<ts>\d+)$")

EXPORT_VERSION = "1.0"

# Change notifications (the admin page and storefront listen to these)
vessel_signals = Namespace()
vessel_data_changed = vessel_signals.signal("vessel-data-changed")
vessel_image_error = vessel_signals.signal("vessel-image-error")


DEFAULT_VESSEL_STYLES = [
    VesselStyle(
        id="style1",
        name="Style #1",
        description="Decorative empty candle vessel with lid, crafted from light-colored concrete material. Features subtle purple marbling or swirling patterns.",
    ),
    VesselStyle(
        id="style2",
        name="Style #2",
        description="Empty candle vessel with textured, fluted exterior and golden rim. Light blue/teal color with splashes of gold, suggesting a marbling or distressed effect.",
    ),
    VesselStyle(
        id="style3",
        name="Style #3",
        description="Oval marbled blue/white/gold vessel with elegant curved profile and sophisticated color blending.",
    ),
    VesselStyle(
        id="style4",
        name="Style #4",
        description="Assorted fluted marbled vessels featuring various color combinations and textured ridged exteriors.",
    ),
    VesselStyle(
        id="style5",
        name="Style #5",
        description="Black/white/gold marbled vessel with rose-colored metallic lid, creating a luxurious contrast.",
    ),
    VesselStyle(
        id="style6",
        name="Style #6",
        description="Earth-tone marbled vessel with warm brown and cream swirls, perfect for rustic or natural decor.",
    ),
    VesselStyle(
        id="style7",
        name="Style #7",
        description="Geometric concrete vessel with clean lines and modern minimalist design in neutral gray tones.",
    ),
    VesselStyle(
        id="style8",
        name="Style #8",
        description="Ceramic vessel with glossy finish and abstract paint drip patterns in multiple vibrant colors.",
    ),
    VesselStyle(
        id="style9",
        name="Style #9",
        description="Natural wood vessel with live edge details and organic grain patterns, eco-friendly and sustainable.",
    ),
    VesselStyle(
        id="style10",
        name="Style #10",
        description="Crystal-inspired vessel with faceted geometry and translucent material creating light refraction effects.",
    ),
    VesselStyle(
        id="style11",
        name="Style #11",
        description="Vintage-inspired vessel with antique bronze finish and ornate decorative relief patterns.",
    ),
    VesselStyle(
        id="style12",
        name="Style #12",
        description="Ocean-themed vessel with blue-green gradient and wave-like texture patterns reminiscent of sea glass.",
    ),
    VesselStyle(
        id="style13",
        name="Style #13",
        description="Industrial-style vessel with raw metal finish and exposed welding seams for urban modern aesthetics.",
    ),
    VesselStyle(
        id="style14",
        name="Style #14",
        description="Bohemian vessel with intricate mandala patterns and warm terracotta base with metallic accents.",
    ),
    VesselStyle(
        id="style15",
        name="Style #15",
        description="Custom hybrid vessel combining multiple materials like concrete, wood, and metal for unique artistic appeal.",
    ),
]


def default_vessels() -> list[VesselStyle]:
    return [v.model_copy() for v in DEFAULT_VESSEL_STYLES]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_image_map(raw: Optional[str]) -> Optional[dict[str, str]]:
    """Parse a stored image map; None means missing or corrupted."""
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    return {str(k): v for k, v in parsed.items() if isinstance(v, str)}


class VesselStore:
    """Vessel styles and images on top of a KeyValueStorage."""

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_config: Optional[VesselStorageConfig] = None,
        clock=_now_ms,
    ):
        self.storage = storage
        self.config = storage_config or VesselStorageConfig()
        self._clock = clock
        self._last_ms = 0

    def _timestamp(self) -> int:
        """Monotonic millisecond timestamp so generated keys never collide."""
        ms = max(int(self._clock()), self._last_ms + 1)
        self._last_ms = ms
        return ms

    # ------------------------------------------------------------------
    # Vessel styles
    # ------------------------------------------------------------------

    def get_vessels(self) -> list[VesselStyle]:
        """Stored vessel styles, or the defaults when nothing usable is stored."""
        stored = self.storage.get_item(VESSEL_STORAGE_KEY)
        if not stored:
            return default_vessels()
        try:
            return [VesselStyle.model_validate(v) for v in json.loads(stored)]
        except Exception:
            console.print("[yellow]Warning: Stored vessel styles unreadable, using defaults[/yellow]")
            return default_vessels()

    def get_visible_vessels(self) -> list[VesselStyle]:
        return [v for v in self.get_vessels() if v.is_visible]

    def save_vessels(self, vessels: list[Any]) -> None:
        """Save vessel styles and verify the write."""
        styles = [v if isinstance(v, VesselStyle) else VesselStyle.model_validate(v) for v in vessels]
        payload = json.dumps([v.model_dump(by_alias=True, exclude_none=True) for v in styles])
        try:
            self.storage.set_item(VESSEL_STORAGE_KEY, payload)
            if not self.storage.get_item(VESSEL_STORAGE_KEY):
                raise RuntimeError("Failed to save vessel styles")
        except Exception as e:
            console.print(f"[red]Failed to save vessels: {e}[/red]")
            raise
        vessel_data_changed.send(self, type="vessels", count=len(styles))

    def add_vessel(self, name: Optional[str] = None, description: Optional[str] = None) -> VesselStyle:
        vessels = self.get_vessels()
        number = len(vessels) + 1
        vessel = VesselStyle(
            id=f"style{number}",
            name=name or f"Style #{number}",
            description=description or "New vessel style - click edit to add description",
        )
        vessels.append(vessel)
        self.save_vessels(vessels)
        return vessel

    def update_vessel(self, vessel_id: str, **changes: Any) -> VesselStyle:
        vessels = self.get_vessels()
        for i, vessel in enumerate(vessels):
            if vessel.id == vessel_id:
                updated = vessel.model_copy(update=changes)
                vessels[i] = updated
                self.save_vessels(vessels)
                return updated
        raise KeyError(vessel_id)

    def toggle_visibility(self, vessel_id: str) -> VesselStyle:
        vessel = next((v for v in self.get_vessels() if v.id == vessel_id), None)
        if vessel is None:
            raise KeyError(vessel_id)
        return self.update_vessel(vessel_id, is_visible=not vessel.is_visible)

    def delete_vessel(self, vessel_id: str) -> None:
        """Remove a vessel style and its image."""
        vessels = [v for v in self.get_vessels() if v.id != vessel_id]
        self.save_vessels(vessels)
        images = self.get_vessel_images()
        if vessel_id in images:
            del images[vessel_id]
            self.save_vessel_images(images)

    # ------------------------------------------------------------------
    # Vessel images: load / recovery chain
    # ------------------------------------------------------------------

    def get_vessel_images(self) -> dict[str, str]:
        """
        Load the image map, recovering from backups when the main key is bad.

        Never raises; an empty map means nothing was recoverable.
        """
        try:
            images = _parse_image_map(self.storage.get_item(VESSEL_IMAGES_STORAGE_KEY))
            if images is not None:
                console.print(f"[dim]✓ Loaded {len(images)} vessel images from main storage[/dim]")
                return images
            return self._recover()
        except Exception as e:
            console.print(f"[red]Failed to get vessel images: {e}[/red]")
            return {}

    def recover_vessel_images(self) -> dict[str, str]:
        """Manual recovery: same chain as loading, reported to the console."""
        images = self.get_vessel_images()
        if images:
            console.print(f"[green]✓ Recovered {len(images)} images[/green]")
        else:
            console.print("[yellow]No images could be recovered from backups[/yellow]")
        return images

    def _recover(self) -> dict[str, str]:
        console.print("[cyan]Attempting to recover vessel images from backups...[/cyan]")

        for backup_key in BACKUP_KEYS:
            raw = self.storage.get_item(backup_key)
            images = _parse_image_map(raw)
            if images is None:
                if raw:
                    console.print(f"[yellow]Warning: {backup_key} is corrupted[/yellow]")
                continue
            console.print(f"[green]✓ Recovered {len(images)} images from {backup_key}[/green]")
            self._restore_main(raw)
            return images

        for emergency_key in self._emergency_keys()[: self.config.emergency_keys_to_try]:
            raw = self.storage.get_item(emergency_key)
            images = _parse_image_map(raw)
            if images is None:
                continue
            console.print(
                f"[green]✓ Recovered {len(images)} images from emergency backup: {emergency_key}[/green]"
            )
            self._restore_main(raw)
            return images

        recovered = self._individual_images()
        if recovered:
            console.print(f"[green]✓ Recovered {len(recovered)} individual images[/green]")
            try:
                self.save_vessel_images(recovered)
            except Exception as e:
                console.print(f"[yellow]Warning: Could not re-save recovered images: {e}[/yellow]")
            return recovered

        console.print("[dim]No vessel images found in storage or backups[/dim]")
        return {}

    def _restore_main(self, raw: str) -> None:
        try:
            self.storage.set_item(VESSEL_IMAGES_STORAGE_KEY, raw)
            console.print("[green]✓ Restored main storage from backup[/green]")
        except Exception as e:
            console.print(f"[yellow]Warning: Could not restore main storage: {e}[/yellow]")

    def _emergency_keys(self) -> list[str]:
        """Emergency keys, newest first."""
        keys = [k for k in self.storage.keys() if k.startswith(EMERGENCY_PREFIX)]
        return sorted(keys, key=self._key_timestamp, reverse=True)

    @staticmethod
    def _key_timestamp(key: str) -> int:
        suffix = key.rsplit("_", 1)[-1]
        return int(suffix) if suffix.isdigit() else 0

    def _individual_images(self) -> dict[str, str]:
        """Collect per-image keys; the newest key wins for each vessel id."""
        found: dict[str, tuple[int, str]] = {}
        for key in self.storage.keys():
            match = INDIVIDUAL_KEY_PATTERN.match(key)
            if not match:
                continue
            value = self.storage.get_item(key)
            if not value:
                continue
            vessel_id, ts = match.group("id"), int(match.group("ts"))
            if vessel_id not in found or ts > found[vessel_id][0]:
                found[vessel_id] = (ts, value)
        return {vessel_id: value for vessel_id, (_, value) in sorted(found.items())}

    # ------------------------------------------------------------------
    # Vessel images: save chain
    # ------------------------------------------------------------------

    def save_vessel_images(self, images: dict[str, str]) -> None:
        """
        Save the image map with backups.

        Raises the original storage error after the fallbacks have run.
        """
        self._save_images(images, allow_compression=True)

    def _save_images(self, images: dict[str, str], allow_compression: bool) -> None:
        image_data = json.dumps(images)
        size = len(image_data.encode("utf-8"))
        size_mb = size / (1024 * 1024)
        console.print(f"[dim]Saving vessel images - Size: {size_mb:.2f}MB, Count: {len(images)}[/dim]")

        if allow_compression and size > self.config.compress_threshold_bytes:
            console.print("[yellow]Warning: Image data is large, compressing[/yellow]")
            compressed = self.compress(images)
            compressed_size = len(json.dumps(compressed).encode("utf-8"))
            if compressed_size < size:
                console.print(
                    f"[dim]Compressed images from {size_mb:.2f}MB "
                    f"to {compressed_size / (1024 * 1024):.2f}MB[/dim]"
                )
                self._save_images(compressed, allow_compression=False)
                return

        try:
            self.storage.set_item(VESSEL_IMAGES_STORAGE_KEY, image_data)
            timestamp = self._timestamp()
            for backup_key in BACKUP_KEYS:
                self.storage.set_item(backup_key, image_data)
            self.storage.set_item(TIMESTAMP_KEY, str(timestamp))

            self.cleanup_old_backups()

            if self.storage.get_item(VESSEL_IMAGES_STORAGE_KEY) != image_data:
                raise RuntimeError("Failed to save vessel images - data mismatch")

            console.print("[green]✓ Images saved successfully with backups[/green]")
            vessel_data_changed.send(
                self, type="images", count=len(images), size=size_mb, timestamp=timestamp
            )

        except Exception as error:
            console.print(f"[red]Failed to save vessel images: {error}[/red]")
            self._emergency_save(images)
            raise

    def _emergency_save(self, images: dict[str, str]) -> None:
        backup_key = f"{EMERGENCY_PREFIX}{self._timestamp()}"
        try:
            self.storage.set_item(backup_key, json.dumps(images))
            console.print(f"[yellow]Saved emergency backup to: {backup_key}[/yellow]")
            vessel_image_error.send(
                self,
                message="Images saved to emergency backup. Please export data soon.",
                backup_key=backup_key,
            )
        except Exception as backup_error:
            console.print(f"[red]Failed to save emergency backup: {backup_error}[/red]")
            self._save_individual(images)

    def _save_individual(self, images: dict[str, str]) -> list[str]:
        """Last resort: one key per image, whatever fits."""
        saved = []
        for vessel_id, value in images.items():
            key = f"{INDIVIDUAL_PREFIX}{vessel_id}-{self._timestamp()}"
            try:
                self.storage.set_item(key, value)
                saved.append(key)
                console.print(f"[dim]  Saved individual image: {vessel_id}[/dim]")
            except Exception as e:
                console.print(f"[red]  Failed to save individual image {vessel_id}: {e}[/red]")
        return saved

    def compress(self, images: dict[str, str]) -> dict[str, str]:
        return compress_images(
            images, max_side=self.config.max_image_side, quality=self.config.jpeg_quality
        )

    def cleanup_old_backups(self) -> list[str]:
        """
        Drop all but the newest emergency keys.

        The two rolling backups are always kept since they are rewritten on
        every save.
        """
        stale = self._emergency_keys()[self.config.backups_to_keep :]
        for key in stale:
            self.storage.remove_item(key)
            console.print(f"[dim]Cleaned up old backup: {key}[/dim]")
        return stale

    def clear_backups(self) -> int:
        """Remove backup, emergency and individual keys; keep current images."""
        keys = [
            k
            for k in self.storage.keys()
            if k in BACKUP_KEYS or k.startswith(EMERGENCY_PREFIX) or k.startswith(INDIVIDUAL_PREFIX)
        ]
        for key in keys:
            self.storage.remove_item(key)
        console.print(f"[green]✓ Cleared {len(keys)} backup entries[/green]")
        return len(keys)

    def set_vessel_image(self, vessel_id: str, image: bytes) -> str:
        """
        Compress an uploaded photo and store it for the vessel.

        Raises:
            ValidationError: the upload is not a readable image
        """
        try:
            data_url = image_bytes_to_data_url(image)
        except (UnidentifiedImageError, OSError) as e:
            console.print(f"[yellow]Warning: Rejected image for {vessel_id}: {e}[/yellow]")
            raise ValidationError("Invalid image", ["file"]) from e
        images = self.get_vessel_images()
        images[vessel_id] = data_url
        self.save_vessel_images(images)
        return data_url

    # ------------------------------------------------------------------
    # Export / import / clear
    # ------------------------------------------------------------------

    def export_data(self) -> dict:
        return {
            "vessels": [v.model_dump(by_alias=True, exclude_none=True) for v in self.get_vessels()],
            "images": self.get_vessel_images(),
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "version": EXPORT_VERSION,
        }

    def import_data(self, data: Any) -> bool:
        """Load an export produced by export_data. Returns False on any failure."""
        try:
            if not isinstance(data, dict):
                raise ValueError("Import data must be an object")
            if isinstance(data.get("vessels"), list):
                self.save_vessels(data["vessels"])
            if isinstance(data.get("images"), dict):
                self.save_vessel_images(data["images"])
            return True
        except Exception as e:
            console.print(f"[red]Failed to import vessel data: {e}[/red]")
            return False

    def clear(self) -> None:
        self.storage.remove_item(VESSEL_STORAGE_KEY)
        self.storage.remove_item(VESSEL_IMAGES_STORAGE_KEY)
        vessel_data_changed.send(self, type="cleared")

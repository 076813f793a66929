import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from core.prometheus_metrics import prometheus_collector
from core.storage import AssetStorage, StorageEntry, get_asset_storage
from schemas.vehicle import AssetResolution
from services import name_normalizer

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp")
PLACEHOLDER_NAMES = {".emptyfolderplaceholder", ".keep", ".gitkeep"}

_IMAGE_NAME = re.compile(r"\.(%s)$" % "|".join(IMAGE_EXTENSIONS), re.IGNORECASE)
_TRAILING_INDEX = re.compile(r"-(\d+)\.[a-z0-9]+$", re.IGNORECASE)

PrimaryRule = Callable[[Sequence[StorageEntry], str], Optional[StorageEntry]]


def basename(name: str) -> str:
    stem, dot, _ = name.rpartition(".")
    return (stem if dot else name).lower()


def is_image_entry(entry: StorageEntry) -> bool:
    if entry.name.lower() in PLACEHOLDER_NAMES:
        return False
    return bool(_IMAGE_NAME.search(entry.name))


def trailing_index(name: str) -> int:
    """'c43-3.jpg' -> 3; names without a trailing '-<n>.<ext>' sort as 0."""
    match = _TRAILING_INDEX.search(name)
    return int(match.group(1)) if match else 0


def _first(entries: Sequence[StorageEntry], predicate) -> Optional[StorageEntry]:
    return next((entry for entry in entries if predicate(basename(entry.name))), None)


def _exact_model_main(entries, model):
    return _first(entries, lambda stem: stem == f"{model}-main")


def _glued_model_main(entries, model):
    return _first(entries, lambda stem: stem == f"{model}main")


def _any_main(entries, model):
    return _first(entries, lambda stem: stem.endswith("-main"))


def _unique_model_name(entries, model):
    matches = [entry for entry in entries if basename(entry.name) == model]
    return matches[0] if len(matches) == 1 else None


# Evaluated in order; the first rule returning an entry wins.
PRIMARY_RULES: Tuple[Tuple[str, PrimaryRule], ...] = (
    ("model-main", _exact_model_main),
    ("modelmain", _glued_model_main),
    ("any-main", _any_main),
    ("unique-model", _unique_model_name),
)


def select_primary(entries: Sequence[StorageEntry], model: str) -> Tuple[Optional[StorageEntry], str]:
    """
    Picks the representative photo among image entries.

    Returns the entry and the name of the rule that matched. When no rule
    matches, the alphabetically first entry is used so the outcome does not
    depend on the order the store happens to list objects in.
    """
    if not entries:
        return None, "none"
    for rule_name, rule in PRIMARY_RULES:
        if rule_name == "unique-model" and not model:
            continue
        found = rule(entries, model)
        if found is not None:
            return found, rule_name
    return min(entries, key=lambda entry: entry.name), "fallback"


def order_gallery(entries: Sequence[StorageEntry], primary: Optional[StorageEntry]) -> List[StorageEntry]:
    """Non-primary entries by trailing index; stable, so ties keep listing order."""
    rest = [entry for entry in entries if entry is not primary]
    return sorted(rest, key=lambda entry: trailing_index(entry.name))


class AssetResolver:
    """
    Finds a vehicle's photos in the asset bucket from its display name.

    Resolution never raises: a missing folder, an empty folder or a storage
    failure all end in an empty ``AssetResolution``.
    """

    def __init__(self, storage: AssetStorage):
        self.storage = storage

    async def resolve_assets(self, display_name: Optional[str]) -> AssetResolution:
        try:
            return await self._resolve(display_name)
        except Exception as e:
            logger.warning(
                f"Asset resolution failed for '{display_name}': {e}",
                extra={"display_name": display_name},
            )
            prometheus_collector.record_asset_resolution("empty")
            return AssetResolution()

    async def _resolve(self, display_name: Optional[str]) -> AssetResolution:
        folder, entries = await self._locate_folder(display_name)

        images = [entry for entry in entries if is_image_entry(entry)]
        if not folder or not images:
            prometheus_collector.record_asset_resolution("empty")
            return AssetResolution(folder=folder)

        model = name_normalizer.model_segment(folder)
        primary, rule_name = select_primary(images, model)
        rest = order_gallery(images, primary)

        primary_url = self.storage.public_url(folder, primary.name) if primary else None
        gallery = ([primary_url] if primary_url else []) + [
            self.storage.public_url(folder, entry.name) for entry in rest
        ]

        prometheus_collector.record_asset_resolution("fallback" if rule_name == "fallback" else "primary")
        logger.debug(
            "Resolved vehicle assets",
            extra={"folder": folder, "rule": rule_name, "images": len(images)},
        )
        return AssetResolution(primary=primary_url, gallery=gallery, folder=folder)

    async def _locate_folder(self, display_name: Optional[str]) -> Tuple[Optional[str], List[StorageEntry]]:
        """Canonical key first, then the make/model key. Listings are never merged."""
        key = name_normalizer.normalize(display_name)
        entries = await self._safe_list(key) if key else []
        if entries:
            return key, entries

        alt_key = name_normalizer.alternative_key(display_name)
        if alt_key and alt_key != key:
            alt_entries = await self._safe_list(alt_key)
            if alt_entries:
                prometheus_collector.record_asset_resolution("alt_key")
                return alt_key, alt_entries

        return (key or None), []

    async def _safe_list(self, folder: str) -> List[StorageEntry]:
        try:
            return list(await self.storage.list_folder(folder))
        except Exception as e:
            logger.warning(
                f"Listing asset folder '{folder}' failed: {e}",
                extra={"folder": folder},
            )
            return []


def get_asset_resolver() -> AssetResolver:
    """FastAPI dependency: a resolver over the process-wide storage adapter."""
    return AssetResolver(get_asset_storage())

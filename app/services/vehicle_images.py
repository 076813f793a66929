"""
Attaching bucket photos to a vehicle.

Folder names in the bucket were created by hand over time, so a vehicle's
photos may sit under its display name, under "make model", under the model
alone or under a lowercase "make-model". Each spelling is tried in order and
the first one that yields a primary photo wins.
"""

import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

from schemas.vehicle import AssetResolution, VehicleOut
from services import name_normalizer
from services.asset_resolver import AssetResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")
Strategy = Tuple[str, Callable[[], Awaitable[Optional[T]]]]


async def first_successful(strategies: Iterable[Strategy]) -> Tuple[Optional[str], Optional[T]]:
    """
    Runs named async strategies in order and stops at the first truthy result.

    A strategy that raises counts as a miss; the next one is tried.
    """
    for name, strategy in strategies:
        try:
            result = await strategy()
        except Exception as e:
            logger.warning(f"Strategy '{name}' failed: {e}")
            continue
        if result:
            return name, result
    return None, None


def name_variants(vehicle: VehicleOut) -> List[Tuple[str, str]]:
    """Spellings to look the vehicle's folder up by, one per distinct folder key."""
    make = (vehicle.make or "").strip()
    model = (vehicle.model or "").strip()
    candidates = [
        ("display-name", (vehicle.name or "").strip()),
        ("make-model", f"{make} {model}".strip()),
        ("model", model),
        ("make-model-slug", f"{make}-{model}".lower().strip("-")),
    ]
    seen = set()
    variants = []
    for label, name in candidates:
        key = name_normalizer.normalize(name)
        if key and key not in seen:
            seen.add(key)
            variants.append((label, name))
    return variants


async def resolve_vehicle_images(
    resolver: AssetResolver,
    vehicle: VehicleOut,
    placeholder_url: Optional[str] = None,
) -> VehicleOut:
    """
    Returns a copy of ``vehicle`` with ``primary_image`` and ``gallery`` set.

    When no spelling yields a primary photo the stored ``image_url`` (or the
    placeholder) is kept and the stored gallery is used.
    """
    def attempt(name: str):
        async def run() -> Optional[AssetResolution]:
            resolution = await resolver.resolve_assets(name)
            return resolution if resolution.primary else None
        return run

    label, resolution = await first_successful(
        (label, attempt(name)) for label, name in name_variants(vehicle)
    )

    if resolution is None:
        logger.debug(
            "No bucket photos for vehicle",
            extra={"vehicle_id": vehicle.id, "display_name": vehicle.display_name},
        )
        primary = vehicle.image_url or placeholder_url
        return vehicle.model_copy(update={
            "primary_image": primary,
            "gallery": list(vehicle.photo_gallery),
            "secondary_images": [url for url in vehicle.photo_gallery if url != primary],
        })

    logger.debug(
        "Vehicle photos resolved",
        extra={"vehicle_id": vehicle.id, "variant": label, "folder": resolution.folder},
    )
    return vehicle.model_copy(update={
        "primary_image": resolution.primary,
        "gallery": list(resolution.gallery),
        "secondary_images": resolution.secondary,
    })

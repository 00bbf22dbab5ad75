"""
Packaging guards and derived values for packaging runs.

Guards raise PackagingValidationError so the API can show the user message
as-is.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional

from core.errors import PackagingValidationError, QuantityValidationError, VolumeValidationError
from core.units import FL_OZ_TO_L, ML_TO_L

PackageType = Literal["bottle", "can", "keg"]

BOTTLE_VOLUME_TOLERANCE_L = 0.05
MAX_PACKAGING_ABV = 20.0

_SIZE_RE = re.compile(r"(\d+(?:\.\d+)?)")


@dataclass(frozen=True)
class BatchPackagingData:
    id: object
    name: str
    current_volume_l: float
    status: str


def validate_positive_volume(volume_l: float, label: str, context: str) -> None:
    if volume_l is None or volume_l <= 0:
        raise VolumeValidationError(
            f"{label} must be positive for {context}: {volume_l}",
            f"{label} must be greater than 0L for {context}.",
            {"volume_l": volume_l},
        )


def validate_positive_count(count, label: str, context: str) -> None:
    if count is None or int(count) != count or count <= 0:
        raise QuantityValidationError(
            f"{label} must be a positive integer for {context}: {count}",
            f"{label} must be a whole number greater than 0 for {context}.",
            {"count": count},
        )


def validate_batch_ready_for_packaging(batch: BatchPackagingData, require_aging: bool = True) -> None:
    """Packaging straight from the cellar passes require_aging=False."""
    details = {"batch_id": str(batch.id), "batch_name": batch.name, "status": batch.status}
    if batch.status == "discarded":
        raise PackagingValidationError(
            f"Batch {batch.name} is discarded",
            f'Batch "{batch.name}" is discarded and cannot be packaged.',
            details,
        )
    if require_aging and batch.status != "aging":
        raise PackagingValidationError(
            f"Batch {batch.name} is not ready for packaging",
            f'Batch "{batch.name}" must be in aging stage to be packaged. Current status: {batch.status}',
            details,
        )
    if batch.current_volume_l <= 0:
        raise PackagingValidationError(
            f"Batch {batch.name} has no volume available",
            f'Batch "{batch.name}" has no volume available for packaging ({batch.current_volume_l}L). '
            "Please check the batch status.",
            {**details, "current_volume_l": batch.current_volume_l},
        )


def validate_packaging_volume(
    batch: BatchPackagingData,
    volume_l: float,
    previously_packaged_l: float = 0.0,
) -> None:
    validate_positive_volume(volume_l, "Packaging volume", f"batch {batch.name}")

    remaining = batch.current_volume_l - previously_packaged_l
    if volume_l > remaining:
        raise PackagingValidationError(
            f"Packaging volume {volume_l}L exceeds remaining batch volume {remaining}L",
            f'Cannot package {volume_l}L from batch "{batch.name}". Only {remaining}L remains available '
            f"(batch volume: {batch.current_volume_l}L, previously packaged: {previously_packaged_l}L). "
            f"Please reduce the packaging volume to {remaining}L or less.",
            {
                "batch_id": str(batch.id),
                "remaining_volume_l": remaining,
                "requested_volume_l": volume_l,
                "excess_volume_l": volume_l - remaining,
            },
        )


def parse_bottle_size_l(bottle_size: str) -> float:
    """'750ml' -> 0.75, '1L' -> 1.0, '12oz' -> 0.355 (US fl oz)."""
    text = (bottle_size or "").strip()
    m = _SIZE_RE.search(text)
    if not m:
        raise PackagingValidationError(
            f"Invalid bottle size format: {bottle_size}",
            f'Bottle size "{bottle_size}" is not in a valid format. Please use a format like "750ml", "500mL", "12oz", etc.',
            {"bottle_size": bottle_size},
        )
    value = float(m.group(1))
    lower = text.lower()
    if "ml" in lower:
        return value * ML_TO_L
    if "l" in lower:
        return value
    return value * FL_OZ_TO_L


def validate_bottle_consistency(bottle_size: str, bottle_count: int, volume_l: float) -> None:
    validate_positive_count(bottle_count, "Bottle count", "packaging run")

    size_l = parse_bottle_size_l(bottle_size)
    expected = size_l * bottle_count
    if abs(expected - volume_l) > BOTTLE_VOLUME_TOLERANCE_L:
        raise PackagingValidationError(
            f"Volume mismatch: {bottle_count} x {bottle_size} != {volume_l}L",
            f"{bottle_count} bottles of {bottle_size} should equal approximately {expected:.2f}L, "
            f"but {volume_l}L was specified. Please verify your calculations.",
            {
                "bottle_size": bottle_size,
                "bottle_count": bottle_count,
                "expected_volume_l": expected,
                "volume_l": volume_l,
            },
        )


def validate_package_date(package_date, now: Optional[datetime] = None) -> None:
    now = now or datetime.now()
    today = now.date() if isinstance(package_date, date) and not isinstance(package_date, datetime) else now
    if package_date > today:
        raise PackagingValidationError(
            f"Package date {package_date} is in the future",
            "Package date cannot be in the future.",
            {"package_date": str(package_date)},
        )


def validate_abv_at_packaging(abv: Optional[float]) -> None:
    if abv is None:
        return
    if abv < 0 or abv > MAX_PACKAGING_ABV:
        raise PackagingValidationError(
            f"ABV {abv} out of range",
            f"ABV at packaging must be between 0% and {MAX_PACKAGING_ABV:.0f}%.",
            {"abv": abv},
        )


def determine_package_type(package_size_ml: float) -> PackageType:
    if package_size_ml <= 500:
        return "bottle"
    if package_size_ml <= 1000:
        return "can"
    return "keg"


def calculate_packaging_loss(volume_taken_l: float, units_produced: int, package_size_ml: float) -> dict:
    packaged_l = units_produced * (package_size_ml / 1000)
    loss_l = volume_taken_l - packaged_l
    loss_pct = (loss_l / volume_taken_l * 100) if volume_taken_l > 0 else 0.0
    return {
        "packaged_volume_l": round(packaged_l, 3),
        "loss_l": round(loss_l, 2),
        "loss_percentage": round(loss_pct, 2),
    }


def generate_lot_code(batch_name: str, packaged_at: date, sequence: int) -> str:
    prefix = re.sub(r"\s+", "-", (batch_name or "BATCH").strip()).upper()
    return f"{prefix}-{packaged_at.strftime('%Y%m%d')}-{sequence:02d}"

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from lesson_booking.application.exceptions import RemoteWriteError, ValidationError
from lesson_booking.application.ports.catalog_store import CatalogStorePort
from lesson_booking.domain.entities.coach_profile import CoachLessonProfile
from lesson_booking.domain.entities.lesson_package import LessonPackage

PACKAGE_FIELDS = {"name", "duration_minutes", "max_gymnasts", "price", "description", "is_active"}


@dataclass
class PackageDraft:
    name: str = ""
    duration_minutes: int = 30
    max_gymnasts: int = 1
    price: Decimal = Decimal("0")
    description: str = ""
    is_active: bool = True
    is_default: bool = False
    id: str | None = None


@dataclass
class CatalogDraft:
    """A coach's editable lesson menu. Nothing here is persisted until CatalogUseCase.save."""

    hub_id: str
    coach_user_id: str
    events: list[str] = field(default_factory=list)
    levels: list[str] = field(default_factory=list)
    bio: str = ""
    is_active: bool = True
    packages: list[PackageDraft] = field(default_factory=list)
    pending_deletes: list[str] = field(default_factory=list)
    profile_id: str | None = None
    coach_name: str | None = None

    def add_package(self, duration_minutes: int = 30, max_gymnasts: int = 1) -> PackageDraft:
        draft = PackageDraft(
            duration_minutes=duration_minutes,
            max_gymnasts=max_gymnasts,
            is_default=self.default_package() is None,
        )
        self.packages.append(draft)
        return draft

    def update_package(self, index: int, **fields: Any) -> PackageDraft:
        unknown = set(fields) - PACKAGE_FIELDS
        if unknown:
            raise ValueError(f"Unknown package fields: {sorted(unknown)}")
        pkg = self.packages[index]
        for key, value in fields.items():
            if key == "price":
                value = _to_decimal(value)
            setattr(pkg, key, value)
        return pkg

    def remove_package(self, index: int) -> PackageDraft:
        removed = self.packages.pop(index)
        if removed.id:
            self.pending_deletes.append(removed.id)
        return removed

    def move_package(self, source: int, destination: int) -> None:
        pkg = self.packages.pop(source)
        self.packages.insert(destination, pkg)

    def set_default_package(self, index: int) -> None:
        for i, pkg in enumerate(self.packages):
            pkg.is_default = i == index

    def default_package(self) -> PackageDraft | None:
        return next((p for p in self.packages if p.is_default), None)

    def toggle_event(self, event: str) -> None:
        _toggle(self.events, event)

    def toggle_level(self, level: str) -> None:
        _toggle(self.levels, level)


class CatalogUseCase:
    def __init__(
        self,
        catalog: CatalogStorePort,
        default_duration_minutes: int = 30,
        default_max_gymnasts: int = 1,
    ) -> None:
        self._catalog = catalog
        self._default_duration_minutes = default_duration_minutes
        self._default_max_gymnasts = default_max_gymnasts
        self._logger = logging.getLogger(__name__)

    def load(self, hub_id: str, coach_user_id: str) -> CatalogDraft:
        profile = self._catalog.get_profile(hub_id, coach_user_id)
        packages = self._catalog.list_packages(hub_id, coach_user_id)

        draft = CatalogDraft(hub_id=hub_id, coach_user_id=coach_user_id)
        if profile is not None:
            draft.events = sorted(profile.events)
            draft.levels = sorted(profile.levels)
            draft.bio = profile.bio or ""
            draft.is_active = profile.is_active
            draft.profile_id = profile.id
            draft.coach_name = profile.coach_name

        if packages:
            draft.packages = [
                PackageDraft(
                    id=p.id,
                    name=p.name,
                    duration_minutes=p.duration_minutes,
                    max_gymnasts=p.max_gymnasts,
                    price=p.price,
                    description=p.description or "",
                    is_active=p.is_active,
                    is_default=p.is_default,
                )
                for p in packages
            ]
            if draft.default_package() is None:
                # Rows saved before the default flag existed: their legacy scalars came from the first active package
                first_active = next((i for i, p in enumerate(draft.packages) if p.is_active), None)
                if first_active is not None:
                    draft.set_default_package(first_active)
        elif profile is not None:
            duration = profile.lesson_duration_minutes or self._default_duration_minutes
            draft.packages = [
                PackageDraft(
                    name=f"{duration} Min Private",
                    duration_minutes=duration,
                    max_gymnasts=profile.max_gymnasts_per_slot or self._default_max_gymnasts,
                    price=profile.cost_per_lesson or Decimal("0"),
                    is_active=True,
                    is_default=True,
                )
            ]
        return draft

    def validate(self, draft: CatalogDraft) -> None:
        if not draft.events:
            raise ValidationError("Please select at least one event you teach")
        if not draft.levels:
            raise ValidationError("Please select at least one level you teach")

        active = [p for p in draft.packages if p.is_active]
        if draft.is_active and not active:
            raise ValidationError("Please add at least one active pricing package")

        for pkg in draft.packages:
            if not pkg.name.strip():
                raise ValidationError("All packages must have a name")
            if pkg.duration_minutes <= 0:
                raise ValidationError(f"Package '{pkg.name}' must last at least one minute")
            if pkg.max_gymnasts < 1:
                raise ValidationError(f"Package '{pkg.name}' must allow at least one gymnast")
            if pkg.price < 0:
                raise ValidationError(f"Package '{pkg.name}' cannot have a negative price")

        defaults = [p for p in draft.packages if p.is_default]
        if len(defaults) > 1:
            raise ValidationError("Only one package can be the default")
        if active and (not defaults or not defaults[0].is_active):
            raise ValidationError("Please choose an active default package")

    def save(self, draft: CatalogDraft) -> CatalogDraft:
        """
        Persist the draft: profile upsert, then the queued deletions as one batch,
        then one upsert per package with sort_order set to its position.

        The three writes are independent. On failure the draft keeps whatever has
        not been applied yet (pending deletes and package ids), so saving again
        resumes instead of duplicating rows.
        """
        self.validate(draft)

        owned = {p.id for p in self._catalog.list_packages(draft.hub_id, draft.coach_user_id)}
        referenced = [p.id for p in draft.packages if p.id] + list(draft.pending_deletes)
        foreign = [package_id for package_id in referenced if package_id not in owned]
        if foreign:
            self._logger.warning(
                "Catalog save referenced packages the coach does not own",
                extra={"coach_user_id": draft.coach_user_id, "target_id": ",".join(foreign)},
            )
            raise ValidationError("One or more packages do not belong to this coach")

        default = draft.default_package()
        profile = CoachLessonProfile(
            id=draft.profile_id,
            hub_id=draft.hub_id,
            coach_user_id=draft.coach_user_id,
            events=frozenset(draft.events),
            levels=frozenset(draft.levels),
            bio=draft.bio.strip() or None,
            is_active=draft.is_active,
            cost_per_lesson=default.price if default else Decimal("0"),
            lesson_duration_minutes=default.duration_minutes if default else self._default_duration_minutes,
            max_gymnasts_per_slot=default.max_gymnasts if default else self._default_max_gymnasts,
            coach_name=draft.coach_name,
        )

        try:
            stored = self._catalog.upsert_profile(profile)
            draft.profile_id = stored.id

            if draft.pending_deletes:
                self._catalog.delete_packages(list(draft.pending_deletes))
                draft.pending_deletes.clear()

            for position, pkg in enumerate(draft.packages):
                saved = self._catalog.upsert_package(
                    LessonPackage(
                        id=pkg.id,
                        hub_id=draft.hub_id,
                        coach_user_id=draft.coach_user_id,
                        name=pkg.name.strip(),
                        duration_minutes=pkg.duration_minutes,
                        max_gymnasts=pkg.max_gymnasts,
                        price=pkg.price,
                        description=pkg.description.strip() or None,
                        is_active=pkg.is_active,
                        sort_order=position,
                        is_default=pkg.is_default,
                    )
                )
                pkg.id = saved.id
        except RemoteWriteError as e:
            self._logger.error(
                "Error saving coach lesson profile",
                extra={"coach_user_id": draft.coach_user_id, "error": str(e)},
            )
            raise

        self._logger.info(
            "Coach lesson profile saved",
            extra={"coach_user_id": draft.coach_user_id, "package_count": len(draft.packages)},
        )
        return self.load(draft.hub_id, draft.coach_user_id)


def _toggle(values: list[str], value: str) -> None:
    if value in values:
        values.remove(value)
    else:
        values.append(value)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip() or "0")
    except InvalidOperation:
        raise ValidationError(f"Invalid price: {value!r}")

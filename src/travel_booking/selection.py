"""Working selection of one option per leg during the selection stage."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum

from .errors import OptionNotInCatalogError, SelectionIncompleteError
from .models import SelectionUpdate, TravelRequest
from .options import Leg, TravelOption


class SelectionPolicy(StrEnum):
    """Which legs must carry a selection before submission."""

    # Every leg, even when its catalog is empty.
    ALL_LEGS = "all_legs"
    # Legs with an empty catalog are trivially satisfied.
    NON_EMPTY_CATALOGS = "non_empty_catalogs"


def _position(catalog: Sequence[TravelOption], option: TravelOption) -> int | None:
    for index, candidate in enumerate(catalog):
        if candidate is option:
            return index
    for index, candidate in enumerate(catalog):
        if candidate == option:
            return index
    return None


class SelectionManager:
    """Track the traveler's in-progress choice for onward, return and hotel."""

    def __init__(
        self,
        catalogs: dict[Leg, Sequence[TravelOption]],
        policy: SelectionPolicy = SelectionPolicy.ALL_LEGS,
    ) -> None:
        self.catalogs: dict[Leg, tuple[TravelOption, ...]] = {
            leg: tuple(catalogs.get(leg, ())) for leg in Leg
        }
        self.policy = SelectionPolicy(policy)
        self._selected: dict[Leg, TravelOption | None] = dict.fromkeys(Leg)

    @classmethod
    def from_booking(
        cls,
        booking: TravelRequest,
        policy: SelectionPolicy = SelectionPolicy.ALL_LEGS,
    ) -> SelectionManager:
        """Start from the booking's catalogs and its persisted indices."""

        manager = cls({leg: booking.catalog(leg) for leg in Leg}, policy=policy)
        for leg in Leg:
            option = booking.selected_option(leg)
            if option is not None:
                manager._selected[leg] = option
        return manager

    def selected(self, leg: Leg) -> TravelOption | None:
        return self._selected[leg]

    def select_option(self, leg: Leg, option: TravelOption) -> None:
        """Make ``option`` the working selection for ``leg``."""

        if _position(self.catalogs[leg], option) is None:
            raise OptionNotInCatalogError(
                f"Option is not part of the {leg.key} catalog"
            )
        self._selected[leg] = option

    def select_index(self, leg: Leg, index: int) -> TravelOption:
        catalog = self.catalogs[leg]
        if not 0 <= index < len(catalog):
            raise OptionNotInCatalogError(
                f"No {leg.key} option at position {index} ({len(catalog)} available)"
            )
        option = catalog[index]
        self._selected[leg] = option
        return option

    def clear(self, leg: Leg | None = None) -> None:
        if leg is None:
            self._selected = dict.fromkeys(Leg)
        else:
            self._selected[leg] = None

    def required_legs(self) -> list[Leg]:
        if self.policy is SelectionPolicy.ALL_LEGS:
            return list(Leg)
        return [leg for leg in Leg if self.catalogs[leg]]

    def missing_legs(self) -> list[Leg]:
        return [leg for leg in self.required_legs() if self._selected[leg] is None]

    def is_complete(self) -> bool:
        return not self.missing_legs()

    def ensure_complete(self) -> None:
        missing = self.missing_legs()
        if missing:
            raise SelectionIncompleteError(missing)

    def to_persisted_indices(self) -> SelectionUpdate:
        """Resolve each working selection to its catalog position."""

        indices: dict[str, int | None] = {}
        for leg in Leg:
            option = self._selected[leg]
            position = None
            if option is not None:
                position = _position(self.catalogs[leg], option)
                if position is None:
                    raise OptionNotInCatalogError(
                        f"Selected {leg.key} option is no longer in its catalog"
                    )
            indices[f"selected_{leg.key}_index"] = position
        return SelectionUpdate(**indices)

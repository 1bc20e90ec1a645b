from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from storyboard_studio.modes import CompositionMode, resolve_mode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    """What the user currently has picked.

    ``asset_ids`` has set semantics but keeps the order assets were picked in.
    A selected result excludes everything else; a selected asset or product
    excludes a result.
    """

    asset_ids: tuple[str, ...] = ()
    product_id: str | None = None
    result_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.asset_ids and self.product_id is None and self.result_id is None


class SelectionTracker:
    # Every operation swaps in a whole new SelectionState, so the exclusion
    # rules hold after each call with no cleanup step.

    def __init__(self) -> None:
        self._state = SelectionState()

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def mode(self) -> CompositionMode:
        return resolve_mode(self._state)

    def toggle_asset(self, asset_id: str) -> SelectionState:
        ids = self._state.asset_ids
        if asset_id in ids:
            ids = tuple(i for i in ids if i != asset_id)
        else:
            ids = ids + (asset_id,)
        self._state = SelectionState(asset_ids=ids, product_id=self._state.product_id, result_id=None)
        return self._state

    def select_product(self, product_id: str) -> SelectionState:
        new_id = None if self._state.product_id == product_id else product_id
        self._state = SelectionState(asset_ids=self._state.asset_ids, product_id=new_id, result_id=None)
        return self._state

    def select_result(self, result_id: str) -> SelectionState:
        if self._state.result_id == result_id:
            self._state = SelectionState()
        else:
            self._state = SelectionState(result_id=result_id)
        return self._state

    def clear_all(self) -> SelectionState:
        self._state = SelectionState()
        return self._state

    def forget(self, entity_id: str) -> SelectionState:
        """Drop ``entity_id`` from every selection slot it occupies."""
        s = self._state
        self._state = SelectionState(
            asset_ids=tuple(i for i in s.asset_ids if i != entity_id),
            product_id=None if s.product_id == entity_id else s.product_id,
            result_id=None if s.result_id == entity_id else s.result_id,
        )
        return self._state

    def retain(self, valid_ids: Iterable[str]) -> SelectionState:
        """Keep only selections that still point at an existing entity."""
        valid = set(valid_ids)
        s = self._state
        self._state = SelectionState(
            asset_ids=tuple(i for i in s.asset_ids if i in valid),
            product_id=s.product_id if s.product_id in valid else None,
            result_id=s.result_id if s.result_id in valid else None,
        )
        if self._state != s:
            logger.debug("Pruned dangling selection: %s -> %s", s, self._state)
        return self._state

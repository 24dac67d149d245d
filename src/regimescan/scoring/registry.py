"""Scorer registry keyed by regime."""

from __future__ import annotations

import importlib
import inspect
import pkgutil
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from types import ModuleType

from regimescan.config import Settings
from regimescan.domain.models import Regime
from regimescan.scoring.base import RegimeScorer

ScorerFactory = Callable[[Settings], RegimeScorer]
_SKIPPED_MODULES = {
    "__init__",
    "base",
    "registry",
}
FALLBACK_SCORER_ID = "baseline"


def _scoring_package_name() -> str:
    return __name__.rsplit(".", 1)[0]


def _scoring_directory() -> Path:
    return Path(__file__).resolve().parent


def _iter_scorer_module_names() -> list[str]:
    names: list[str] = []
    for module in pkgutil.iter_modules([str(_scoring_directory())]):
        name = module.name
        if name.startswith("_") or name in _SKIPPED_MODULES:
            continue
        names.append(name)
    return sorted(names)


def _scorer_types_in_module(module: ModuleType) -> list[type[RegimeScorer]]:
    discovered: list[type[RegimeScorer]] = []
    for _, candidate in inspect.getmembers(module, inspect.isclass):
        if candidate is RegimeScorer or not issubclass(candidate, RegimeScorer):
            continue
        if candidate.__module__ != module.__name__:
            continue
        scorer_id = getattr(candidate, "scorer_id", None)
        if not isinstance(scorer_id, str) or not scorer_id.strip():
            continue
        discovered.append(candidate)
    return discovered


@lru_cache(maxsize=1)
def _discover_registry() -> tuple[dict[Regime, type[RegimeScorer]], dict[str, type[RegimeScorer]]]:
    package_name = _scoring_package_name()
    by_regime: dict[Regime, type[RegimeScorer]] = {}
    by_id: dict[str, type[RegimeScorer]] = {}

    for module_name in _iter_scorer_module_names():
        module = importlib.import_module(f"{package_name}.{module_name}")
        for scorer_type in _scorer_types_in_module(module):
            scorer_id = scorer_type.scorer_id.strip().lower()
            if scorer_id in by_id:
                raise ValueError(f"Duplicate scorer id discovered: '{scorer_id}'")
            by_id[scorer_id] = scorer_type
            for regime in scorer_type.regimes:
                if regime in by_regime:
                    raise ValueError(
                        f"Regime '{regime.value}' is claimed by both "
                        f"'{by_regime[regime].scorer_id}' and '{scorer_id}'"
                    )
                by_regime[regime] = scorer_type

    if FALLBACK_SCORER_ID not in by_id:
        raise ValueError(f"Fallback scorer '{FALLBACK_SCORER_ID}' is not registered")
    return by_regime, by_id


def available_scorer_ids() -> list[str]:
    """Return discovered scorer ids."""
    _, by_id = _discover_registry()
    return sorted(by_id)


def registered_regimes() -> list[Regime]:
    """Regimes with a dedicated scorer; the rest use the baseline."""
    by_regime, _ = _discover_registry()
    return [regime for regime in Regime if regime in by_regime]


def scorer_type_for(regime: Regime) -> type[RegimeScorer]:
    by_regime, by_id = _discover_registry()
    return by_regime.get(regime, by_id[FALLBACK_SCORER_ID])


def create_scorer(regime: Regime, settings: Settings) -> RegimeScorer:
    """Build the scorer registered for ``regime``, falling back to the baseline."""
    return scorer_type_for(regime)(settings)

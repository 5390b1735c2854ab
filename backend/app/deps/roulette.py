"""
Roulette selector dependency.

Tests swap in a selector with a seeded RNG via
app.dependency_overrides[get_roulette_selector].
"""
from app.core.config import settings
from app.services.roulette import RouletteSelector


def get_roulette_selector() -> RouletteSelector:
    return RouletteSelector(base_rotations=settings.ROULETTE_BASE_ROTATIONS)

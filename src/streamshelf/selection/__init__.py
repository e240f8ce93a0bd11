from .carousels import Carousel, CarouselConfig, CarouselItem, generate_daily_carousels
from .engine import HeroResult, SelectionEngine, SelectionResult, selection_key
from .seeding import daily_seed, day_string, seeded_shuffle

__all__ = [
    "Carousel",
    "CarouselConfig",
    "CarouselItem",
    "HeroResult",
    "SelectionEngine",
    "SelectionResult",
    "daily_seed",
    "day_string",
    "generate_daily_carousels",
    "seeded_shuffle",
    "selection_key",
]

"""Collect short-term rental listings from FlipKey around a US city."""

from .cities import CityDirectory, load_city_directory
from .geo import distance_miles
from .models import CityRecord, Listing, ListingDetail, LocationSuggestion, PipelineResult
from .pipeline import ListingAggregator, run_pipeline

__all__ = [
    "CityDirectory",
    "CityRecord",
    "Listing",
    "ListingAggregator",
    "ListingDetail",
    "LocationSuggestion",
    "PipelineResult",
    "distance_miles",
    "load_city_directory",
    "run_pipeline",
]

"""Exceptions raised by the listing aggregation pipeline."""

from __future__ import annotations


class FlipKeyError(Exception):
    """Base class for all package errors."""


class UnexpectedResponseError(FlipKeyError):
    """A remote endpoint answered with an unexpected status, content type or payload."""


class CityDatasetError(FlipKeyError):
    """The US cities dataset could not be loaded."""


class PipelineError(FlipKeyError):
    """A condition that aborts the whole aggregation run."""

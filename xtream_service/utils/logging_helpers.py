"""
Logging helpers shared by the session and catalog services.

Keeps start/end markers and catalog summaries in one format.
"""
import logging
from datetime import datetime, timezone


def log_section_start(logger: logging.Logger, operation: str) -> None:
    """Mark the beginning of a session operation such as a login."""
    logger.info(f"Begin {operation}")


def log_section_end(logger: logging.Logger, operation: str) -> None:
    logger.info(f"Done {operation}")


def log_catalog_fetch_start(logger: logging.Logger, username: str) -> None:
    """Log catalog fetch operation start."""
    logger.info(
        f"Catalog fetch for '{username}' started at {datetime.now(timezone.utc).isoformat()}"
    )


def log_catalog_fetch_end(logger: logging.Logger, username: str) -> None:
    """Log catalog fetch operation end."""
    logger.info(
        f"Catalog fetch for '{username}' completed at {datetime.now(timezone.utc).isoformat()}"
    )


def log_catalog_summary(
    logger: logging.Logger,
    channels_count: int,
    movies_count: int,
    series_count: int,
    categories_count: int
) -> None:
    """
    Log catalog normalization summary.

    Args:
        logger: Logger instance
        channels_count: Number of live channels
        movies_count: Number of VOD titles
        series_count: Number of series
        categories_count: Number of categories across all kinds
    """
    logger.info(
        f"Loaded {channels_count} channels, {movies_count} movies, "
        f"{series_count} series, {categories_count} categories"
    )

"""
Services package for Xtream Session Service

This package contains the wire client, catalog aggregation, playback URL
building and session state.
"""
from xtream_service.services.catalog_service import CatalogAggregator
from xtream_service.services.playback_url_service import PlaybackURLBuilder
from xtream_service.services.session_service import (
    SessionSnapshot,
    SessionState,
    XtreamSession,
    get_session,
)
from xtream_service.services.xtream_api_service import XtreamClient

__all__ = [
    'CatalogAggregator',
    'PlaybackURLBuilder',
    'SessionSnapshot',
    'SessionState',
    'XtreamClient',
    'XtreamSession',
    'get_session',
]

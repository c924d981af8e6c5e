"""
Xtream Session Service

Client core for Xtream Codes IPTV panels: authentication, catalog
aggregation, session state and playback URL synthesis.
"""
__version__ = "0.1.0"

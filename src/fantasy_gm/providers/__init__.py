"""
ESPN fantasy data provider.

Usage:
    from fantasy_gm.providers import EspnClient

    async with EspnClient.from_settings(get_settings()) as client:
        bundle = await client.fetch_league_bundle()
"""

from .espn import EspnClient, LeagueBundle, LeagueSettings, parse_transactions

__all__ = [
    "EspnClient",
    "LeagueBundle",
    "LeagueSettings",
    "parse_transactions",
]

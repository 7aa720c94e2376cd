from typing import Optional

# Alternate player-prop markets on The Odds API (basketball_nba)
ALT_NBA_PLAYER_PROP_MARKETS = (
    "player_points_alternate",
    "player_rebounds_alternate",
    "player_assists_alternate",
    "player_blocks_alternate",
    "player_steals_alternate",
    "player_turnovers_alternate",
    "player_threes_alternate",
    "player_points_assists_alternate",
    "player_points_rebounds_alternate",
    "player_rebounds_assists_alternate",
    "player_points_rebounds_assists_alternate",
)

ALT_MARKET_LABELS = {
    "player_points_alternate": "Alternate Points (O/U)",
    "player_rebounds_alternate": "Alternate Rebounds (O/U)",
    "player_assists_alternate": "Alternate Assists (O/U)",
    "player_blocks_alternate": "Alternate Blocks (O/U)",
    "player_steals_alternate": "Alternate Steals (O/U)",
    "player_turnovers_alternate": "Alternate Turnovers (O/U)",
    "player_threes_alternate": "Alternate Threes (O/U)",
    "player_points_assists_alternate": "Alternate Points + Assists (O/U)",
    "player_points_rebounds_alternate": "Alternate Points + Rebounds (O/U)",
    "player_rebounds_assists_alternate": "Alternate Rebounds + Assists (O/U)",
    "player_points_rebounds_assists_alternate": "Alternate Points + Rebounds + Assists (O/U)",
}

_TEAM_ABBREV = {
    "atlanta hawks": "ATL",
    "boston celtics": "BOS",
    "brooklyn nets": "BKN",
    "charlotte hornets": "CHA",
    "chicago bulls": "CHI",
    "cleveland cavaliers": "CLE",
    "dallas mavericks": "DAL",
    "denver nuggets": "DEN",
    "detroit pistons": "DET",
    "golden state warriors": "GSW",
    "houston rockets": "HOU",
    "indiana pacers": "IND",
    "los angeles clippers": "LAC",
    "la clippers": "LAC",
    "los angeles lakers": "LAL",
    "memphis grizzlies": "MEM",
    "miami heat": "MIA",
    "milwaukee bucks": "MIL",
    "minnesota timberwolves": "MIN",
    "new orleans pelicans": "NOP",
    "new york knicks": "NYK",
    "oklahoma city thunder": "OKC",
    "orlando magic": "ORL",
    "philadelphia 76ers": "PHI",
    "phoenix suns": "PHX",
    "portland trail blazers": "POR",
    "sacramento kings": "SAC",
    "san antonio spurs": "SAS",
    "toronto raptors": "TOR",
    "utah jazz": "UTA",
    "washington wizards": "WAS",
}


def market_label(market_key: str) -> Optional[str]:
    return ALT_MARKET_LABELS.get(market_key)


def team_abbrev(team_name: Optional[str]) -> str:
    """
    Convert an Odds API team name (e.g. 'Golden State Warriors') into the
    NBA abbreviation ('GSW'). Falls back to the stripped original string.
    """
    if not team_name:
        return ""
    name = team_name.strip()
    return _TEAM_ABBREV.get(name.lower(), name)


def game_label(away_team: Optional[str], home_team: Optional[str]) -> str:
    return f"{team_abbrev(away_team)} @ {team_abbrev(home_team)}"

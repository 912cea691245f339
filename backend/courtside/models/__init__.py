from courtside.models.club import Club
from courtside.models.court import Court
from courtside.models.entry import Entry
from courtside.models.match import Match
from courtside.models.player import Player
from courtside.models.team import Team
from courtside.models.team_player import TeamPlayer
from courtside.models.tournament import Tournament, TournamentFormat
from courtside.models.tournament_lock import TournamentLock
from courtside.models.umpire import Umpire

__all__ = [
    "Tournament",
    "TournamentFormat",
    "Club",
    "Player",
    "Team",
    "TeamPlayer",
    "Entry",
    "Court",
    "Umpire",
    "Match",
    "TournamentLock",
]

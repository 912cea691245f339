# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from courtside.models.club import Club  # noqa: F401
from courtside.models.court import Court  # noqa: F401
from courtside.models.entry import Entry  # noqa: F401
from courtside.models.match import Match  # noqa: F401
from courtside.models.player import Player  # noqa: F401
from courtside.models.team import Team  # noqa: F401
from courtside.models.team_player import TeamPlayer  # noqa: F401
from courtside.models.tournament import Tournament  # noqa: F401
from courtside.models.tournament_lock import TournamentLock  # noqa: F401
from courtside.models.umpire import Umpire  # noqa: F401

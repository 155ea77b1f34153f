import os

MAX_LEADERBOARD_LIMIT = 500


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """Settings read from the environment when the app is created.

    Values are resolved in __init__ rather than at class level so that tests
    patching os.environ before create_app() see their overrides.
    """

    def __init__(self):
        self.SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
        self.SQLALCHEMY_TRACK_MODIFICATIONS = False

        self.TRUSTGRAPH_WRITE_KEY = os.environ.get("TRUSTGRAPH_WRITE_KEY")
        self.TRUSTGRAPH_ENFORCE_WRITE_KEY = _env_flag("TRUSTGRAPH_ENFORCE_WRITE_KEY")
        self.TRUSTGRAPH_PUBLIC_BASE_URL = os.environ.get(
            "TRUSTGRAPH_PUBLIC_BASE_URL", "http://localhost:3040")
        self.TRUSTGRAPH_CACHE_BADGES = _env_flag("TRUSTGRAPH_CACHE_BADGES", "true")

        # Recompute job: max agent/skill keys per cron run. 0 = only lazy recompute on ingest.
        self.SCORE_RECOMPUTE_BATCH_SIZE = int(os.environ.get("SCORE_RECOMPUTE_BATCH_SIZE", "0"))
        self.SCORE_RECOMPUTE_INTERVAL_MINUTES = int(
            os.environ.get("SCORE_RECOMPUTE_INTERVAL_MINUTES", "10"))

        self.MAX_LEADERBOARD_LIMIT = MAX_LEADERBOARD_LIMIT

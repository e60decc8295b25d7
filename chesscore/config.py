from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional


ENV_PREFIX = "CHESSCORE_"


@dataclass
class Settings:
    """Runtime settings for the service and UCI front ends.

    Every field can be overridden with an environment variable named
    ``CHESSCORE_<FIELD>`` (e.g. ``CHESSCORE_SEARCH_DEPTH=4``).
    """

    search_depth: int = 3
    analysis_depth: int = 3
    analysis_top_k: int = 8
    analysis_max_plies: int = 80
    analysis_time_budget_ms: int = 20_000
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            if f.type in ("int", int):
                try:
                    values[f.name] = int(raw)
                except ValueError as e:
                    raise ValueError(f"{ENV_PREFIX}{f.name.upper()} must be an integer") from e
            else:
                values[f.name] = raw
        settings = cls(**values)
        # Depths are clamped, never rejected.
        settings.search_depth = max(1, settings.search_depth)
        settings.analysis_depth = max(1, settings.analysis_depth)
        settings.analysis_top_k = max(1, settings.analysis_top_k)
        return settings

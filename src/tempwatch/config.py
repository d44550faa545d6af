# runtime settings from the environment (.env is loaded for local runs)

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
from .providers import BASE_TIMES, SimulatedProvider, TemperatureProvider

PROVIDERS = ("simulated", "kma")


@dataclass(frozen=True)
class Settings:
    provider: str = "simulated"
    fetch_timeout: Optional[float] = 15.0
    base_time: str = "1700"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        provider = os.getenv("TEMPWATCH_PROVIDER", cls.provider).strip().lower()
        if provider not in PROVIDERS:
            raise ValueError(f"TEMPWATCH_PROVIDER must be one of {PROVIDERS} (got {provider!r})")

        raw_timeout = os.getenv("TEMPWATCH_FETCH_TIMEOUT", "15")
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ValueError(f"TEMPWATCH_FETCH_TIMEOUT must be a number (got {raw_timeout!r})") from exc

        base_time = os.getenv("TEMPWATCH_BASE_TIME", cls.base_time)
        if base_time not in BASE_TIMES:
            raise ValueError(f"TEMPWATCH_BASE_TIME must be one of {', '.join(BASE_TIMES)} (got {base_time!r})")

        return cls(
            provider=provider,
            fetch_timeout=timeout if timeout > 0 else None,
            base_time=base_time,
            log_level=os.getenv("TEMPWATCH_LOG_LEVEL", cls.log_level).upper(),
        )


def build_provider(name: str, seed: Optional[int] = None) -> TemperatureProvider:
    if name == "kma":
        # imported lazily so the simulated path never needs an API key
        from .client import KMAClient

        return KMAClient()
    if name == "simulated":
        return SimulatedProvider(seed=seed)
    raise ValueError(f"unknown provider {name!r}")
